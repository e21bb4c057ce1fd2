"""Schema for the transaction/coin index.

Tables:
- transactions: one row per (chain, network, txid)
- coins: one row per output, keyed by (chain, network, mint_txid, mint_index)
"""

import duckdb


def init_schema(conn: duckdb.DuckDBPyConnection) -> None:
    """Create the index tables if they do not exist.

    Args:
        conn: DuckDB connection.
    """
    conn.execute(
        """
        CREATE TABLE IF NOT EXISTS transactions (
            chain VARCHAR NOT NULL,
            network VARCHAR NOT NULL,
            txid VARCHAR NOT NULL,
            block_height INTEGER NOT NULL,
            block_time_normalized TIMESTAMP,
            PRIMARY KEY (chain, network, txid)
        )
        """
    )

    conn.execute(
        """
        CREATE TABLE IF NOT EXISTS coins (
            chain VARCHAR NOT NULL,
            network VARCHAR NOT NULL,
            mint_txid VARCHAR NOT NULL,
            mint_index INTEGER NOT NULL,
            mint_height INTEGER NOT NULL,
            spent_txid VARCHAR,
            spent_height INTEGER NOT NULL DEFAULT -2,
            value BIGINT DEFAULT 0,
            PRIMARY KEY (chain, network, mint_txid, mint_index)
        )
        """
    )


def init_indexes(conn: duckdb.DuckDBPyConnection) -> None:
    """Create lookup indexes used by candidate queries and traversal.

    Args:
        conn: DuckDB connection.
    """
    conn.execute(
        "CREATE INDEX IF NOT EXISTS idx_coin_mint ON coins(chain, network, mint_txid)"
    )
    conn.execute(
        "CREATE INDEX IF NOT EXISTS idx_coin_spent ON coins(chain, network, spent_txid)"
    )
