"""
Data schemas for ledger file validation.

Defines expected columns and data types for the files the engine writes and
reads back.
"""

from dataclasses import dataclass


@dataclass
class ColumnSchema:
    """Schema definition for a single column."""
    name: str
    dtype: str  # pandas dtype string
    required: bool = True
    nullable: bool = False


@dataclass
class FileSchema:
    """Schema definition for a file."""
    name: str
    columns: list[ColumnSchema]
    description: str

    @property
    def required_columns(self) -> list[str]:
        """Get list of required column names."""
        return [c.name for c in self.columns if c.required]

    @property
    def all_columns(self) -> list[str]:
        """Get list of all column names."""
        return [c.name for c in self.columns]

    def validate_columns(self, df_columns: list[str]) -> tuple[bool, list[str]]:
        """
        Validate that a dataframe has the required columns.

        Args:
            df_columns: List of column names from the dataframe

        Returns:
            Tuple of (is_valid, list of missing columns)
        """
        missing = [col for col in self.required_columns if col not in df_columns]
        return len(missing) == 0, missing


# Reconciled ledger rows (one per matcher record)
LEDGER_SCHEMA = FileSchema(
    name="ledger",
    description="Matched and open ledger records with P&L and charges",
    columns=[
        ColumnSchema(name="status", dtype="str", required=True),
        ColumnSchema(name="trade_date", dtype="datetime64[ns]", required=True),
        ColumnSchema(name="symbol", dtype="str", required=True),
        ColumnSchema(name="side", dtype="str", required=True),
        ColumnSchema(name="quantity", dtype="float64", required=True),
        ColumnSchema(name="price", dtype="float64", required=True),
        ColumnSchema(name="instrument_class", dtype="str", required=True),
        ColumnSchema(name="lot_size", dtype="int64", required=True),
        ColumnSchema(name="segment", dtype="str", required=True),
        ColumnSchema(name="leg_id", dtype="str", required=True),
        ColumnSchema(name="leg_quantity", dtype="float64", required=False),
        ColumnSchema(name="buy_leg_id", dtype="str", required=False, nullable=True),
        ColumnSchema(name="buy_trade_date", dtype="datetime64[ns]", required=False, nullable=True),
        ColumnSchema(name="buy_quantity", dtype="float64", required=False, nullable=True),
        ColumnSchema(name="pnl", dtype="float64", required=True, nullable=True),
        ColumnSchema(name="charges", dtype="float64", required=True),
        ColumnSchema(name="net_pnl", dtype="float64", required=True, nullable=True),
        ColumnSchema(name="entry_price", dtype="float64", required=False, nullable=True),
        ColumnSchema(name="exit_price", dtype="float64", required=False, nullable=True),
        ColumnSchema(name="buy_charges", dtype="float64", required=False),
        ColumnSchema(name="sell_charges", dtype="float64", required=False),
    ],
)

# Rows dropped during parsing
REJECTS_SCHEMA = FileSchema(
    name="rejects",
    description="Input rows dropped by validation, with reasons",
    columns=[
        ColumnSchema(name="row_number", dtype="int64", required=True),
        ColumnSchema(name="reason", dtype="str", required=True),
        ColumnSchema(name="detail", dtype="str", required=True),
        ColumnSchema(name="raw", dtype="str", required=True),
    ],
)
