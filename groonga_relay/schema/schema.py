from .schema_core import Column, ColumnFlag, SchemaCache, Table, TableFlag
from .type_guesser import TypeGuesser
from ..errors import SchemaError

import logging

logger = logging.getLogger(__name__)


class Schema:
    """Local cache of one table's schema, backed by the engine.

    The table and its columns are looked up on the first update(). Fields
    that are not cached yet get a column whose type is guessed from the
    values in that update; cached columns are never re-guessed.
    """

    def __init__(self, client, table_name):
        self.client = client
        self.table_name = table_name
        self.cache = SchemaCache()

    @property
    def table(self):
        return self.cache.table

    @property
    def columns(self):
        return self.cache.columns

    def update(self, records):
        self._ensure_table()
        self._ensure_columns()

        for name, values in self.cache.unknown_fields(records).items():
            self._create_column(name, values)

    def _ensure_table(self):
        if self.cache.table_populated:
            return

        response = self._execute("table_list", {})
        target = None
        for row in response.records():
            if row.get("name") == self.table_name:
                target = row
                break

        if target is not None:
            self.cache.table = Table(self.table_name, target.get("domain"))
            logger.info(f"Found table {self.table_name} (key type: {self.cache.table.key_type})")
        else:
            self._execute(
                "table_create",
                {"name": self.table_name, "flags": TableFlag.NO_KEY.value},
            )
            self.cache.table = Table(self.table_name, None)
            logger.info(f"Created table {self.table_name}")
        self.cache.table_populated = True

    def _ensure_columns(self):
        if self.cache.columns_populated:
            return

        response = self._execute("column_list", {"table": self.table_name})
        for row in response.records():
            name = row.get("name")
            if not name:
                continue
            self.cache.add_column(Column.from_flags(name, row.get("range"), row.get("flags")))
        self.cache.columns_populated = True
        logger.debug(f"Table {self.table_name} has {len(self.cache.columns)} known columns")

    def _create_column(self, name, sample_values):
        guesser = TypeGuesser(sample_values)
        value_type = guesser.guess()
        vector = guesser.vector()
        self._execute(
            "column_create",
            {
                "table": self.table_name,
                "name": name,
                "flags": ColumnFlag.for_vector(vector).value,
                "type": value_type.value,
            },
        )
        logger.info(
            f"Created column {self.table_name}.{name} ({value_type.value}, vector={vector})"
        )
        return self.cache.add_column(Column(name, value_type.value, vector))

    def _execute(self, name, arguments):
        response = self.client.execute(name, arguments)
        if not response.status_known:
            logger.warning(f"No reply status observed for {name}; assuming it succeeded")
        elif not response.success:
            raise SchemaError(
                f"{name} failed with status {response.status_code}: {response.error_message}",
                command_name=name,
                arguments=arguments,
                response=response,
            )
        return response
