import re
import time
from enum import Enum

from .schema_core import ValueType

import logging

logger = logging.getLogger(__name__)


class ValueKind(Enum):
    NULL = "null"
    BOOLEAN = "boolean"
    INTEGER = "integer"
    FLOAT = "float"
    STRING = "string"
    LIST = "list"
    OTHER = "other"


def classify_value(value) -> ValueKind:
    # bool is a subclass of int, so it has to be checked first
    if value is None:
        return ValueKind.NULL
    elif isinstance(value, bool):
        return ValueKind.BOOLEAN
    elif isinstance(value, int):
        return ValueKind.INTEGER
    elif isinstance(value, float):
        return ValueKind.FLOAT
    elif isinstance(value, str):
        return ValueKind.STRING
    elif isinstance(value, (list, tuple)):
        return ValueKind.LIST
    else:
        return ValueKind.OTHER


class TypeGuesser:
    """Guess a Groonga column type from the values seen for one field.

    Checks run from the narrowest type to the widest and the first one that
    accepts every sample wins; Text accepts anything. List samples are not
    flattened, so a field holding lists is guessed over the lists themselves
    and ends up as a Text vector.
    """

    YEAR_IN_SECONDS = 365 * 24 * 60 * 60
    TIME_WINDOW = 10 * YEAR_IN_SECONDS

    INT32_MIN = -(2**31)
    INT32_MAX = 2**31 - 1

    GEO_POINT_PATTERN = re.compile(r"-?\d+(?:\.\d+)[,x]-?\d+(?:\.\d+)", re.ASCII)

    def __init__(self, sample_values, now=None):
        self.sample_values = list(sample_values)
        self.now = now

    def guess(self) -> ValueType:
        checks = [
            (ValueType.TIME, self._time_values),
            (ValueType.INT32, self._int32_values),
            (ValueType.INT64, self._int64_values),
            (ValueType.FLOAT, self._float_values),
            (ValueType.GEO_POINT, self._geo_point_values),
        ]
        for value_type, check in checks:
            if check():
                logger.debug(f"Guessed {value_type.value} from {len(self.sample_values)} samples")
                return value_type
        return ValueType.TEXT

    def vector(self) -> bool:
        return any(
            classify_value(value) == ValueKind.LIST for value in self.sample_values
        )

    def _kinds(self):
        return [classify_value(value) for value in self.sample_values]

    def _all_integers_within(self, low, high):
        return all(
            kind == ValueKind.INTEGER and low <= value <= high
            for kind, value in zip(self._kinds(), self.sample_values)
        )

    def _time_values(self):
        now = int(time.time()) if self.now is None else int(self.now)
        return self._all_integers_within(now - self.TIME_WINDOW, now + self.TIME_WINDOW)

    def _int32_values(self):
        return self._all_integers_within(self.INT32_MIN, self.INT32_MAX)

    def _int64_values(self):
        return all(kind == ValueKind.INTEGER for kind in self._kinds())

    def _float_values(self):
        return all(
            kind in (ValueKind.INTEGER, ValueKind.FLOAT) for kind in self._kinds()
        )

    def _geo_point_values(self):
        return all(
            kind == ValueKind.STRING and self.GEO_POINT_PATTERN.fullmatch(value)
            for kind, value in zip(self._kinds(), self.sample_values)
        )
