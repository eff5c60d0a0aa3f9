from enum import Enum
from typing import Callable, Optional


class Confirmation(Enum):
    CONFIRMED = "confirmed"
    DECLINED = "declined"

    @property
    def confirmed(self) -> bool:
        return self is Confirmation.CONFIRMED


def confirm(question: str, assume: Optional[bool] = None,
            input_func: Callable[[str], str] = input) -> Confirmation:
    """
    Ask the operator a yes/no question.

    Only a single ``y`` or ``Y`` counts as yes. ``assume`` short-circuits the
    prompt for unattended runs. End of input counts as a decline.
    """
    if assume is not None:
        return Confirmation.CONFIRMED if assume else Confirmation.DECLINED

    try:
        answer = input_func(question)
    except EOFError:
        return Confirmation.DECLINED

    if answer.strip() in ("y", "Y"):
        return Confirmation.CONFIRMED
    return Confirmation.DECLINED
