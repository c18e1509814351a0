"""Abstract base for the two debate advocates."""

from abc import ABC, abstractmethod
from dataclasses import dataclass

from contract_council.models import Argument, Contract, Finding


@dataclass(frozen=True)
class DebateContext:
    contract: Contract
    finding: Finding
    round: int                                  # 1-indexed
    opponent_argument: Argument | None = None


class Advocate(ABC):
    """One side of a finding debate.

    Exactly two variants exist: DevilsAdvocate (risk-maximizing) and
    AngelsAdvocate (risk-mitigating). The arena treats them symmetrically.
    """

    @abstractmethod
    def name(self) -> str:
        """Return the short side name ("devil" or "angel")."""
        ...

    @abstractmethod
    async def argue(self, context: DebateContext) -> Argument:
        """Build this side's argument for the finding in `context`.

        Args:
            context: Contract, finding, round number and, for the second
                speaker, the opposing argument.

        Returns:
            A new Argument. Implementations hold no state between calls.
        """
        ...


def bullets(items, limit: int) -> str:
    """Render the first `limit` items as a bulleted block."""
    return "\n".join(f"• {item}" for item in list(items)[:limit])
