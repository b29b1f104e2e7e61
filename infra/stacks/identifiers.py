import re
from typing import Any, NewType

StreamGroupId = NewType("StreamGroupId", str)

STREAM_GROUP_ID_PATTERN = re.compile(r"^sg-[A-Za-z0-9]{9,}$")


class FormatError(ValueError):
    def __init__(self, value: Any, pattern: str) -> None:
        super().__init__(
            f"Invalid Stream Group ID format: {value!r}. "
            f"Must match pattern {pattern} (at least 9 alphanumeric characters after sg-)"
        )
        self.value = value
        self.pattern = pattern


def validate_stream_group_id(value: Any) -> StreamGroupId:
    # fullmatch so a trailing newline cannot slip past the "$" anchor.
    if not isinstance(value, str) or STREAM_GROUP_ID_PATTERN.fullmatch(value) is None:
        raise FormatError(value, STREAM_GROUP_ID_PATTERN.pattern)
    return StreamGroupId(value)
