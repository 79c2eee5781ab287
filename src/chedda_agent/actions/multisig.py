"""Actions managing the user's (agent, user, coordinator) multisig."""

from __future__ import annotations

from ..addresses import validate_address
from ..multisig import ConfirmationResult, MultisigDetails, MultisigWallet
from .base import BaseAction
from .schemas import CreateMultisigArgs, MultisigUserArgs


class CreateMultisigAction(BaseAction):
    name = "create_multisig"
    description = """
    Create (or return the existing) multisig wallet shared by this agent, the
    user and the coordinator. Takes the user's wallet address.
    """
    schema = CreateMultisigArgs

    async def run(self, args: CreateMultisigArgs) -> str:
        user = validate_address(args.user_address, "userAddress")
        agent_id = args.agent_id or self.state.settings.agent_id
        wallet = await self.state.multisig_required.resolve_or_create(
            agent_id, self.wallet.get_address(), user
        )
        return _describe_wallet(wallet, user)


def _describe_wallet(wallet: MultisigWallet, user: str) -> str:
    message = (
        f"Multisig wallet {wallet.address} is ready for user {user} "
        f"({wallet.threshold}-of-{len(wallet.owners)}; owners: {', '.join(wallet.owners)})."
    )
    if wallet.deployment_tx_hash:
        message += f"\nDeployment transaction: {wallet.deployment_tx_hash}"
    return message


class GetMultisigDetailsAction(BaseAction):
    name = "get_multisig_details"
    description = """
    Show the multisig shared with a user: owners, threshold, nonce and the
    transactions waiting for signatures.
    """
    schema = MultisigUserArgs

    async def run(self, args: MultisigUserArgs) -> MultisigDetails | str:
        user = validate_address(args.user_address, "userAddress")
        multisig = self.state.multisig_required
        wallet = await multisig.lookup(self.wallet.get_address(), user)
        if wallet is None:
            return f"No multisig wallet exists yet for user {user}."
        return await multisig.describe(wallet)


class ConfirmMultisigTransactionAction(BaseAction):
    name = "confirm_multisig_transaction"
    description = """
    Confirm the oldest pending transaction on the user's multisig as the
    coordinator, and execute it once it has enough signatures. Call this after
    the user has signed.
    """
    schema = MultisigUserArgs

    async def run(self, args: MultisigUserArgs) -> ConfirmationResult | str:
        user = validate_address(args.user_address, "userAddress")
        multisig = self.state.multisig_required
        wallet = await multisig.lookup(self.wallet.get_address(), user)
        if wallet is None:
            return f"No multisig wallet exists yet for user {user}."
        result = await multisig.confirm_pending(wallet)
        if result is None:
            return f"No pending transactions on multisig {wallet.address}."
        return result
