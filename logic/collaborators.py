"""logic/collaborators.py — What the heat loop needs from the rest of the game.

The economy is not part of the loop.  The HeatEngine only asks it a
few questions (how legitimate is this actor's income, what is the
balance) and asks it to freeze, unfreeze and fine during an audit.

``Economy`` is that contract with inert defaults (fully legitimate,
broke, freezing and fines are no-ops) so the loop runs without a
ledger.  ``Ledger`` is a small in-memory economy for the demo driver
and tests.
"""

from __future__ import annotations
from dataclasses import dataclass, field


class Economy:
    """Economy contract consumed by the HeatEngine."""

    def legitimacy(self, actor_id: str) -> float:
        """Share of income (0–1) from legal sources."""
        return 1.0

    def balance(self, actor_id: str) -> float:
        return 0.0

    def freeze(self, actor_id: str, amount: float) -> None:
        pass

    def unfreeze(self, actor_id: str, amount: float) -> None:
        pass

    def fine(self, actor_id: str, amount: float, reason: str = "") -> None:
        pass


LEGAL_SOURCES = frozenset({"Salary", "Business", "Gift", "Sale"})


@dataclass
class Wallet:
    balance: float = 0.0
    frozen: float = 0.0
    legal_income: float = 0.0
    illegal_income: float = 0.0
    fines: list[tuple[float, str]] = field(default_factory=list)


class Ledger(Economy):
    """Minimal per-actor wallet with legal/illegal income split.

    Legitimacy is ``legal / (legal + illegal)``, 1.0 with no income.
    """

    def __init__(self):
        self.wallets: dict[str, Wallet] = {}

    def wallet(self, actor_id: str) -> Wallet:
        return self.wallets.setdefault(actor_id, Wallet())

    def add_income(self, actor_id: str, amount: float, source: str = "Salary") -> None:
        if amount <= 0:
            return
        w = self.wallet(actor_id)
        w.balance += amount
        if source in LEGAL_SOURCES:
            w.legal_income += amount
        else:
            w.illegal_income += amount

    def legitimacy(self, actor_id: str) -> float:
        w = self.wallet(actor_id)
        total = w.legal_income + w.illegal_income
        return 1.0 if total <= 0 else w.legal_income / total

    def balance(self, actor_id: str) -> float:
        return self.wallet(actor_id).balance

    def available(self, actor_id: str) -> float:
        w = self.wallet(actor_id)
        return w.balance - w.frozen

    def freeze(self, actor_id: str, amount: float) -> None:
        w = self.wallet(actor_id)
        w.frozen = min(w.balance, w.frozen + max(0.0, amount))

    def unfreeze(self, actor_id: str, amount: float) -> None:
        w = self.wallet(actor_id)
        w.frozen = max(0.0, w.frozen - max(0.0, amount))

    def fine(self, actor_id: str, amount: float, reason: str = "") -> None:
        if amount <= 0:
            return
        w = self.wallet(actor_id)
        w.balance -= amount
        w.fines.append((amount, reason))
        print(f"[ECON] {actor_id} fined {amount:.2f} ({reason})")
