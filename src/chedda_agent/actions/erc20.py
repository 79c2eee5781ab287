"""Token balance, transfer and calldata actions."""

from __future__ import annotations

import asyncio

from ..abi import load_erc20_abi
from ..addresses import validate_address
from ..encoder import encode_swap_exact_tokens_for_tokens, encode_transfer
from ..registry import resolve_token
from ..results import CallDataResponse, TransactionResult
from ..units import display_amount, scale_amount, whole_units
from .base import BaseAction
from .schemas import (
    GetBalanceArgs,
    SwapCallDataArgs,
    TransferArgs,
    TransferCallDataArgs,
)


class GetBalanceAction(BaseAction):
    name = "get_balance"
    description = """
    This tool will get the balance of an ERC20 asset in the wallet. It takes the contract address as input.
    """
    schema = GetBalanceArgs

    async def run(self, args: GetBalanceArgs) -> str:
        token_address = validate_address(args.contract_address, "contractAddress")
        owner = self.wallet.get_address()
        balance, decimals = await asyncio.gather(
            self.wallet.read_contract(token_address, load_erc20_abi(), "balanceOf", [owner]),
            self.token_decimals(token_address),
        )
        return display_amount(int(balance), decimals)


class TransferAction(BaseAction):
    name = "transfer"
    description = """
    This tool will transfer an ERC20 token from the wallet to another onchain address.

    It takes the following inputs:
    - amount: The amount to transfer, in whole units (e.g. 10.5 USDC)
    - contractAddress: The contract address of the token to transfer
    - destination: Where to send the funds (must be a 0x address)

    Always signs and broadcasts with the agent wallet, then waits for confirmation.
    """
    schema = TransferArgs

    async def run(self, args: TransferArgs) -> TransactionResult:
        token_address = validate_address(args.contract_address, "contractAddress")
        destination = validate_address(args.destination, "destination")
        decimals = await self.token_decimals(token_address)
        amount = scale_amount(args.amount, decimals)

        call = CallDataResponse(
            to=token_address,
            data=encode_transfer(destination, amount),
            description=f"Transfer of {args.amount} of {token_address} to {destination}",
        )
        return await self.submit(call)


class GenerateTransferCallDataAction(BaseAction):
    name = "generate_transfer_calldata"
    description = """
    Generate calldata for an ERC20 transfer without sending it.
    The token is looked up by symbol on the wallet's network.
    """
    schema = TransferCallDataArgs

    async def run(self, args: TransferCallDataArgs) -> CallDataResponse:
        token = resolve_token(self.state.network_id, args.symbol)
        destination = validate_address(args.destination, "destination")
        amount = scale_amount(args.amount, token.decimals)
        return CallDataResponse(
            to=token.address,
            data=encode_transfer(destination, amount),
            description=f"Transfer {args.amount} {token.symbol} to {destination}",
        )


class GenerateSwapCallDataAction(BaseAction):
    name = "generate_swap_calldata"
    description = """
    Generate calldata for swapExactTokensForTokens on a swap router.
    Amounts are raw base units of the input and output tokens.
    """
    schema = SwapCallDataArgs

    async def run(self, args: SwapCallDataArgs) -> CallDataResponse:
        router = validate_address(args.router_address, "routerAddress")
        recipient = validate_address(args.recipient, "recipient")
        path = [validate_address(hop, "path") for hop in args.path]
        amount_in = whole_units(args.amount_in)
        amount_out_min = whole_units(args.amount_out_min)

        data = encode_swap_exact_tokens_for_tokens(
            amount_in, amount_out_min, path, recipient, args.deadline
        )
        return CallDataResponse(
            to=router,
            data=data,
            description=(
                f"Swap {amount_in} of {path[0]} for at least {amount_out_min} "
                f"of {path[-1]} to {recipient}"
            ),
        )
