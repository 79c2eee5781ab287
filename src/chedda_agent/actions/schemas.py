"""Input models for every action.

Agents send camelCase keys; snake_case is accepted too. Unknown keys are
dropped rather than rejected.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Annotated, Any

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field
from pydantic.alias_generators import to_camel


def _amount_text(value: Any) -> Any:
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float, Decimal)):
        return str(value)
    return value


# Whole-token amount kept as text so it is scaled exactly with the token decimals
AmountText = Annotated[str, BeforeValidator(_amount_text)]

CATEGORY_DESCRIPTION = """\
Chedda Finance investment category:
- base-meme: supply WETH, yield from the Base meme token ecosystem (higher risk)
- eth-gaming: supply WETH, yield from ETH gaming token activity
- base-gaming: supply USDC, yield from Base gaming projects
- eth-defi: supply USDC, yield from blue-chip ETH DeFi protocols
- cb-assets: supply USDC, yield from Coinbase-backed assets (lower risk)
- weth-stables: supply WETH, yield from WETH-stablecoin liquidity"""


class ActionArgs(BaseModel):
    model_config = ConfigDict(
        extra="ignore", alias_generator=to_camel, populate_by_name=True
    )


class GetBalanceArgs(ActionArgs):
    contract_address: str = Field(description="The contract address of the token to get the balance for")


class TransferArgs(ActionArgs):
    amount: AmountText = Field(description="The amount of the asset to transfer")
    contract_address: str = Field(description="The contract address of the token to transfer")
    destination: str = Field(description="The destination to transfer the funds")


class TransferCallDataArgs(ActionArgs):
    symbol: str = Field(description="Token symbol on the wallet network, e.g. USDC")
    amount: AmountText = Field(description="The amount of the token to transfer")
    destination: str = Field(description="The recipient address")


class SwapCallDataArgs(ActionArgs):
    router_address: str = Field(description="The swap router contract")
    amount_in: AmountText = Field(description="Input amount in base units")
    amount_out_min: AmountText = Field(description="Minimum output amount in base units")
    path: list[str] = Field(min_length=1, description="Token addresses from input to output")
    recipient: str = Field(description="Receiver of the output tokens")
    deadline: int = Field(ge=0, description="Unix timestamp after which the swap reverts")


class SupplyArgs(ActionArgs):
    category: str = Field(description=CATEGORY_DESCRIPTION)
    amount: AmountText = Field(description="The amount to supply")
    use_as_collateral: bool = Field(
        default=False, description="Whether to use the supplied amount as collateral"
    )
    account: str | None = Field(
        default=None,
        description="The user's wallet address; when given the supply goes through the user's multisig",
    )


class WithdrawArgs(ActionArgs):
    category: str = Field(description=CATEGORY_DESCRIPTION)
    amount: AmountText = Field(description="The amount to withdraw")
    account: str | None = Field(
        default=None, description="Receiver and owner of the withdrawal; defaults to the agent wallet"
    )


class BorrowArgs(ActionArgs):
    category: str = Field(description=CATEGORY_DESCRIPTION)
    amount: AmountText = Field(description="The amount to borrow")


class RepayArgs(ActionArgs):
    category: str = Field(description=CATEGORY_DESCRIPTION)
    amount: AmountText = Field(description="The amount to repay")


class GetPoolInfoArgs(ActionArgs):
    category: str = Field(description=CATEGORY_DESCRIPTION)


class GetAccountInfoArgs(ActionArgs):
    category: str = Field(description=CATEGORY_DESCRIPTION)
    account: str = Field(description="The account address to check")


class GetPortfolioArgs(ActionArgs):
    account: str = Field(description="The account address to summarize across all vaults")


class CreateMultisigArgs(ActionArgs):
    user_address: str = Field(description="The user's wallet address (0x..., 42 characters)")
    agent_id: str | None = Field(default=None, description="Agent identifier; defaults to the configured agent")


class MultisigUserArgs(ActionArgs):
    user_address: str = Field(description="The user's wallet address (0x..., 42 characters)")
