"""Chedda lending vault actions: supply, withdraw, borrow, repay and info views."""

from __future__ import annotations

import asyncio

from ..abi import load_lending_pool_abi
from ..addresses import validate_address
from ..encoder import encode_borrow, encode_repay, encode_supply, encode_withdraw
from ..logger import get_logger
from ..registry import Token, Vault, deposit_token, resolve_vault, vault_categories
from ..results import (
    AccountInfo,
    CallDataResponse,
    MultisigProposalResult,
    PoolInfo,
    PortfolioInfo,
    PortfolioPosition,
    TransactionResult,
)
from ..units import scale_amount
from .base import BaseAction
from .schemas import (
    BorrowArgs,
    GetAccountInfoArgs,
    GetPoolInfoArgs,
    GetPortfolioArgs,
    RepayArgs,
    SupplyArgs,
    WithdrawArgs,
)

logger = get_logger(__name__)


class LendingAction(BaseAction):
    """Shared vault resolution for the lending actions."""

    def resolve(self, category: str) -> tuple[Vault, Token]:
        network = self.state.network_id
        vault = resolve_vault(network, category)
        return vault, deposit_token(network, vault)

    async def read(self, vault: Vault, function_name: str, *args) -> int:
        value = await self.wallet.read_contract(
            vault.address, load_lending_pool_abi(), function_name, list(args)
        )
        return int(value)


class SupplyAction(LendingAction):
    name = "supply_to_vault"
    description = """
    Supply assets to a Chedda Finance lending vault.

    With `account`, the supply is proposed to the (agent, user) multisig, which
    is created on first use; it executes only after the user signs too. Without
    `account`, the supply is for the agent wallet itself.
    """
    schema = SupplyArgs

    async def run(
        self, args: SupplyArgs
    ) -> CallDataResponse | TransactionResult | MultisigProposalResult:
        vault, token = self.resolve(args.category)
        amount = scale_amount(args.amount, token.decimals)

        if args.account is not None:
            account = validate_address(args.account, "account")
            return await self._propose_supply(args, vault, amount, account)

        receiver = self.wallet.get_address()
        call = CallDataResponse(
            to=vault.address,
            data=encode_supply(amount, receiver, args.use_as_collateral),
            description=f"Supply {args.amount} {vault.deposit_token_symbol} to {args.category} vault",
        )
        return await self.complete(call)

    async def _propose_supply(
        self, args: SupplyArgs, vault: Vault, amount: int, account: str
    ) -> MultisigProposalResult:
        multisig = self.state.multisig_required
        wallet = await multisig.resolve_or_create(
            self.state.settings.agent_id, self.wallet.get_address(), account
        )
        call = CallDataResponse(
            to=vault.address,
            data=encode_supply(amount, wallet.address, args.use_as_collateral),
            description=(
                f"Supply {args.amount} {vault.deposit_token_symbol} to {args.category} "
                f"vault for {account}"
            ),
        )
        proposal = await multisig.propose(wallet, call)
        return MultisigProposalResult(
            multisig_address=wallet.address,
            safe_tx_hash=proposal.safe_tx_hash,
            description=call.description,
            threshold=wallet.threshold,
            owners=wallet.owners,
            ui_url=multisig.ui_url(wallet, proposal.safe_tx_hash),
        )


class WithdrawAction(LendingAction):
    name = "withdraw_from_vault"
    description = """
    Withdraw assets from a Chedda Finance lending vault. The receiver and owner
    are `account` when given, otherwise the agent wallet.
    """
    schema = WithdrawArgs

    async def run(self, args: WithdrawArgs) -> CallDataResponse | TransactionResult:
        vault, token = self.resolve(args.category)
        amount = scale_amount(args.amount, token.decimals)
        if args.account is not None:
            owner = validate_address(args.account, "account")
        else:
            owner = self.wallet.get_address()

        call = CallDataResponse(
            to=vault.address,
            data=encode_withdraw(amount, owner, owner),
            description=f"Withdraw {args.amount} {vault.deposit_token_symbol} from {args.category} vault",
        )
        return await self.complete(call)


class BorrowAction(LendingAction):
    name = "borrow_from_vault"
    description = "Borrow assets from a Chedda Finance lending vault."
    schema = BorrowArgs

    async def run(self, args: BorrowArgs) -> CallDataResponse | TransactionResult:
        vault, token = self.resolve(args.category)
        amount = scale_amount(args.amount, token.decimals)
        call = CallDataResponse(
            to=vault.address,
            data=encode_borrow(amount),
            description=f"Borrow {args.amount} {vault.deposit_token_symbol} from {args.category} vault",
        )
        return await self.complete(call)


class RepayAction(LendingAction):
    name = "repay_to_vault"
    description = "Repay borrowed assets to a Chedda Finance lending vault."
    schema = RepayArgs

    async def run(self, args: RepayArgs) -> CallDataResponse | TransactionResult:
        vault, token = self.resolve(args.category)
        amount = scale_amount(args.amount, token.decimals)
        call = CallDataResponse(
            to=vault.address,
            data=encode_repay(amount),
            description=f"Repay {args.amount} {vault.deposit_token_symbol} to {args.category} vault",
        )
        return await self.complete(call)


class GetPoolInfoAction(LendingAction):
    name = "get_pool_info"
    description = (
        "Get detailed information about a Chedda Finance lending pool including "
        "APY, total supply, utilization, etc."
    )
    schema = GetPoolInfoArgs

    async def run(self, args: GetPoolInfoArgs) -> PoolInfo:
        vault, _ = self.resolve(args.category)
        supply_apy, borrow_apy, supplied, borrowed, supply_cap = await asyncio.gather(
            self.read(vault, "baseSupplyAPY"),
            self.read(vault, "baseBorrowAPY"),
            self.read(vault, "supplied"),
            self.read(vault, "borrowed"),
            self.read(vault, "supplyCap"),
        )
        return PoolInfo(
            supply_apy=supply_apy,
            borrow_apy=borrow_apy,
            total_supplied=supplied,
            total_borrowed=borrowed,
            supply_cap=supply_cap,
            deposit_token=vault.deposit_token_symbol,
        )


class GetAccountInfoAction(LendingAction):
    name = "get_account_info"
    description = "Get detailed account information for a lending pool"
    schema = GetAccountInfoArgs

    async def run(self, args: GetAccountInfoArgs) -> AccountInfo:
        account = validate_address(args.account, "account")
        vault, _ = self.resolve(args.category)
        health, supplied, borrowed = await asyncio.gather(
            self.read(vault, "accountHealth", account),
            self.read(vault, "assetBalance", account),
            self.read(vault, "accountAssetsBorrowed", account),
        )
        return AccountInfo(
            health_factor=health,
            supplied=supplied,
            borrowed=borrowed,
            deposit_token=vault.deposit_token_symbol,
        )


class GetPortfolioAction(LendingAction):
    name = "get_portfolio"
    description = """
    Summarize an account's positions across every Chedda Finance vault:
    totals, overall health factor and risk level.
    """
    schema = GetPortfolioArgs

    async def _position(self, category: str, account: str) -> PortfolioPosition:
        vault, _ = self.resolve(category)
        health, supplied, borrowed, collateral = await asyncio.gather(
            self.read(vault, "accountHealth", account),
            self.read(vault, "assetBalance", account),
            self.read(vault, "accountAssetsBorrowed", account),
            self.read(vault, "totalAccountCollateralValue", account),
        )
        return PortfolioPosition(
            category=category,
            deposit_token=vault.deposit_token_symbol,
            health_factor=health,
            supplied=supplied,
            borrowed=borrowed,
            collateral=collateral,
        )

    async def run(self, args: GetPortfolioArgs) -> PortfolioInfo:
        account = validate_address(args.account, "account")
        categories = vault_categories(self.state.network_id)
        positions = await asyncio.gather(
            *(self._position(category, account) for category in categories)
        )
        active = tuple(p for p in positions if p.is_active)
        logger.debug(
            "Portfolio for %s: %d of %d vaults active", account, len(active), len(positions)
        )
        return PortfolioInfo(account=account, positions=active)
