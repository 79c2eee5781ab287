from __future__ import annotations

import json
from collections.abc import Mapping
from typing import Any

from pydantic import ValidationError

from ..errors import InvalidAddress, InvalidAmount, UnknownToken, UnknownVault
from ..state import AppState
from .base import BaseAction
from .erc20 import (
    GenerateSwapCallDataAction,
    GenerateTransferCallDataAction,
    GetBalanceAction,
    TransferAction,
)
from .lending import (
    BorrowAction,
    GetAccountInfoAction,
    GetPoolInfoAction,
    GetPortfolioAction,
    RepayAction,
    SupplyAction,
    WithdrawAction,
)
from .multisig import (
    ConfirmMultisigTransactionAction,
    CreateMultisigAction,
    GetMultisigDetailsAction,
)

ACTIONS: list[type[BaseAction]] = [
    GetBalanceAction,
    TransferAction,
    GenerateTransferCallDataAction,
    GenerateSwapCallDataAction,
    SupplyAction,
    WithdrawAction,
    BorrowAction,
    RepayAction,
    GetPoolInfoAction,
    GetAccountInfoAction,
    GetPortfolioAction,
    CreateMultisigAction,
    GetMultisigDetailsAction,
    ConfirmMultisigTransactionAction,
]

ACTION_REGISTRY: dict[str, type[BaseAction]] = {action.name: action for action in ACTIONS}


def get_action_class(action_name: str) -> type[BaseAction]:
    """Get action class by name.

    Args:
        action_name: Name of the action (case-insensitive)

    Returns:
        Action class

    Raises:
        ValueError: If action_name is not recognized
    """
    action_name_normalized = action_name.lower()
    if action_name_normalized not in ACTION_REGISTRY:
        raise ValueError(
            f"Unknown action '{action_name}'. "
            f"Available: {', '.join(ACTION_REGISTRY.keys())}"
        )
    return ACTION_REGISTRY[action_name_normalized]


def _describe_validation_error(action_name: str, error: ValidationError) -> str:
    problems = []
    for item in error.errors():
        location = ".".join(str(part) for part in item["loc"]) or "input"
        problems.append(f"{location}: {item['msg']}")
    return f"Invalid input for {action_name}: " + "; ".join(problems)


async def dispatch(state: AppState, action_name: str, payload: Mapping[str, Any]) -> Any:
    """Validate ``payload`` against the action's schema and run it.

    Malformed input (schema, address or amount errors) and registry misses
    come back as a descriptive string the agent can relay; any other failure
    propagates.

    Raises:
        ValueError: If the action is unknown.
    """
    action_cls = get_action_class(action_name)
    try:
        args = action_cls.schema.model_validate(dict(payload))
    except ValidationError as e:
        return _describe_validation_error(action_cls.name, e)

    state.logger.debug("Running %s", action_cls.name)
    try:
        return await action_cls(state).run(args)
    except (InvalidAddress, InvalidAmount, UnknownVault, UnknownToken) as e:
        state.logger.info("%s rejected input: %s", action_cls.name, e)
        return str(e)


def to_tool_output(result: Any) -> str:
    """Render an action result as the text handed back to the agent."""
    if isinstance(result, str):
        return result
    return json.dumps(result.to_dict())


__all__ = [
    "ACTIONS",
    "ACTION_REGISTRY",
    "BaseAction",
    "dispatch",
    "get_action_class",
    "to_tool_output",
]
