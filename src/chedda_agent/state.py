"""Application state container."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from .settings import AgentSettings
from .wallet import WalletProvider

if TYPE_CHECKING:
    from .multisig import MultisigOrchestrator


@dataclass
class AppState:
    """Container for application-wide state and dependencies.

    Passed to every action to avoid global state and enable testing.
    """

    settings: AgentSettings
    logger: logging.Logger
    wallet: WalletProvider
    multisig: MultisigOrchestrator | None = None

    @property
    def network_id(self) -> str:
        return self.wallet.get_network().network_id

    @property
    def multisig_required(self) -> MultisigOrchestrator:
        if self.multisig is None:
            raise ValueError(
                "Multisig support is not configured; set CHEDDA_AGENT_COORDINATOR_PRIVATE_KEY"
            )
        return self.multisig
