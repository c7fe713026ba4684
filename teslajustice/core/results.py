"""
Result types returned across component boundaries.

The orchestrator uses the attached action to decide whether a failure only
skips the current item or aborts the whole monitoring cycle.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Generic, TypeVar, Union

from teslajustice.core.errors import TeslaJusticeError

T = TypeVar("T")


class FailureAction(str, Enum):
    SKIP_ITEM = "skip"
    ABORT_CYCLE = "abort"


@dataclass(frozen=True)
class Success(Generic[T]):
    value: T

    @property
    def ok(self) -> bool:
        return True


@dataclass(frozen=True)
class Failure:
    error: Exception
    action: FailureAction = FailureAction.SKIP_ITEM
    context: str = ""

    @property
    def ok(self) -> bool:
        return False

    @property
    def message(self) -> str:
        return str(self.error) or self.error.__class__.__name__


Result = Union[Success[T], Failure]


def attempt(func: Callable[..., T], *args: Any,
            action: FailureAction = FailureAction.SKIP_ITEM,
            context: str = "", **kwargs: Any) -> "Result[T]":
    """Call ``func`` and wrap its outcome.

    Only pipeline errors are converted; anything else is a programming error
    and propagates.
    """
    try:
        return Success(func(*args, **kwargs))
    except TeslaJusticeError as e:
        return Failure(error=e, action=action, context=context)


def unwrap(result: "Result[T]") -> T:
    """Return the value of a success, or re-raise the failure's error."""
    if isinstance(result, Failure):
        raise result.error
    return result.value

