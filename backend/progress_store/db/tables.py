"""Table Definitions — prefix-qualified SQLAlchemy Core tables for every category.

Invariants:
    - Physical table names are prefix + achievements | prefix + category.db_name
    - Amount column of a category table is named after the category
    - Multiple-category tables key on (player, subcategory column)
    - Built once per ProgressTables instance; one MetaData owns them all

Design Decisions:
    - Core Tables over ORM classes: table names depend on a runtime prefix
    - player stored as String(36) (canonical UUID text) on every dialect
"""

from sqlalchemy import (
    BigInteger, Column, DateTime, Integer, MetaData, String, Table,
)

from progress_store.core.domain_types import MultipleCategory, NormalCategory

PLAYER_LENGTH = 36
ACHIEVEMENT_KEY_LENGTH = 64
MESSAGE_LENGTH = 128
SUBCATEGORY_LENGTH = 64
MOBNAME_LENGTH = 51
CONNECTION_DATE_LENGTH = 10


class ProgressTables:
    """Holds the MetaData and Table objects for one table prefix."""

    def __init__(self, prefix: str = ""):
        self.prefix = prefix
        self.metadata = MetaData()
        self.achievements = Table(
            f"{prefix}achievements", self.metadata,
            Column("player", String(PLAYER_LENGTH), primary_key=True),
            Column("achievement_key", String(ACHIEVEMENT_KEY_LENGTH), primary_key=True),
            Column("message", String(MESSAGE_LENGTH)),
            Column("date", DateTime),
        )
        self._normal = {c: self._build_normal(c) for c in NormalCategory}
        self._multiple = {c: self._build_multiple(c) for c in MultipleCategory}

    def _build_normal(self, category: NormalCategory) -> Table:
        if category is NormalCategory.CONNECTIONS:
            return Table(
                f"{self.prefix}{category.db_name}", self.metadata,
                Column("player", String(PLAYER_LENGTH), primary_key=True),
                Column(category.db_name, Integer, nullable=False),
                Column("date", String(CONNECTION_DATE_LENGTH)),
            )
        return Table(
            f"{self.prefix}{category.db_name}", self.metadata,
            Column("player", String(PLAYER_LENGTH), primary_key=True),
            Column(category.db_name, BigInteger, nullable=False),
            Column("date", DateTime),
        )

    def _build_multiple(self, category: MultipleCategory) -> Table:
        length = MOBNAME_LENGTH if category is MultipleCategory.KILLS else SUBCATEGORY_LENGTH
        return Table(
            f"{self.prefix}{category.db_name}", self.metadata,
            Column("player", String(PLAYER_LENGTH), primary_key=True),
            Column(category.subcategory_db_name, String(length), primary_key=True),
            Column(category.db_name, BigInteger, nullable=False),
            Column("date", DateTime),
        )

    @property
    def connections(self) -> Table:
        return self._normal[NormalCategory.CONNECTIONS]

    def normal(self, category: NormalCategory) -> Table:
        return self._normal[category]

    def multiple(self, category: MultipleCategory) -> Table:
        return self._multiple[category]

    def for_category(self, category: NormalCategory | MultipleCategory) -> Table:
        if isinstance(category, MultipleCategory):
            return self._multiple[category]
        return self._normal[category]

    def unprefixed_name(self, table: Table) -> str:
        return table.name[len(self.prefix):]
