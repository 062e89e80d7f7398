from enum import Enum
from dataclasses import dataclass, field


class ValueType(Enum):
    TIME = "Time"
    INT32 = "Int32"
    INT64 = "Int64"
    FLOAT = "Float"
    GEO_POINT = "WGS84GeoPoint"
    TEXT = "Text"


class TableFlag(Enum):
    NO_KEY = "TABLE_NO_KEY"


class ColumnFlag(Enum):
    SCALAR = "COLUMN_SCALAR"
    VECTOR = "COLUMN_VECTOR"

    @classmethod
    def for_vector(cls, vector):
        return cls.VECTOR if vector else cls.SCALAR


# Columns Groonga manages itself; column_create rejects these names.
PSEUDO_COLUMNS = frozenset(["_id", "_key", "_value"])


@dataclass(frozen=True)
class Table:

    name: str
    key_type: str = None


@dataclass(frozen=True)
class Column:

    name: str
    value_type: str
    vector: bool = False

    @classmethod
    def from_flags(cls, name, value_type, flags):
        """Build a column from a column_list row's ``flags`` text."""
        flag_names = (flags or "").split("|")
        return cls(name, value_type, ColumnFlag.VECTOR.value in flag_names)


@dataclass
class SchemaCache:
    """Tables and columns known to exist on the engine.

    Entries are only ever added; the ``*_populated`` flags record whether the
    engine has been asked yet.
    """

    table: Table = None
    columns: dict = field(default_factory=dict)
    table_populated: bool = False
    columns_populated: bool = False

    def add_column(self, column):
        if column.name in self.columns:
            return self.columns[column.name]
        self.columns[column.name] = column
        return column

    def unknown_fields(self, records):
        """Collect sample values per field name not cached yet, in first-seen order."""
        samples = {}
        for record in records:
            for name, value in record.items():
                if name in self.columns or name in PSEUDO_COLUMNS:
                    continue
                samples.setdefault(name, []).append(value)
        return samples
