"""
Database connection settings for the CLI.

Settings come from command-line arguments first, then environment
variables. Driver modules are imported only when a connection is opened,
so commands that never touch the database work without them.
"""

import argparse
import logging
import os
from typing import Any

logger = logging.getLogger(__name__)

DB_TYPE_ENV = "FULLSYNC_DB_TYPE"


def get_connection_config(args: argparse.Namespace) -> dict[str, Any]:
    """
    Resolve connection settings for the selected database type.

    Args:
        args: Parsed command-line arguments

    Returns:
        Dictionary with ``db_type`` plus the driver's connection settings

    Raises:
        ValueError: If the database type is not supported
    """
    db_type = getattr(args, "db_type", None) or os.getenv(DB_TYPE_ENV, "postgresql")

    if db_type == "postgresql":
        return {
            "db_type": db_type,
            "host": args.db_host or os.getenv("POSTGRES_HOST", "localhost"),
            "port": int(args.db_port or os.getenv("POSTGRES_PORT", "5432")),
            "database": args.db_name or os.getenv("POSTGRES_DB", "postgres"),
            "username": args.db_user or os.getenv("POSTGRES_USER", "postgres"),
            "password": args.db_password or os.getenv("POSTGRES_PASSWORD"),
        }

    if db_type == "sqlserver":
        return {
            "db_type": db_type,
            "server": args.db_host or os.getenv("SQLSERVER_HOST", "localhost"),
            "port": int(args.db_port or os.getenv("SQLSERVER_PORT", "1433")),
            "database": args.db_name or os.getenv("SQLSERVER_DATABASE", "master"),
            "username": args.db_user or os.getenv("SQLSERVER_USER", "sa"),
            "password": args.db_password or os.getenv("SQLSERVER_PASSWORD"),
            "driver": os.getenv("SQLSERVER_DRIVER", "ODBC Driver 18 for SQL Server"),
        }

    raise ValueError(f"Unsupported database type: {db_type!r}")


def connect(config: dict[str, Any]) -> Any:
    """Open a DB-API connection for ``config`` (from ``get_connection_config``)."""
    if config["db_type"] == "postgresql":
        import psycopg2

        connection = psycopg2.connect(
            host=config["host"],
            port=config["port"],
            database=config["database"],
            user=config["username"],
            password=config["password"],
        )
        # Autocommit so a failed query does not leave the session aborted
        connection.set_session(autocommit=True)
        logger.info(f"Connected to PostgreSQL at {config['host']}:{config['port']}")
        return connection

    import pyodbc

    connection = pyodbc.connect(
        f"DRIVER={{{config['driver']}}};"
        f"SERVER={config['server']},{config['port']};"
        f"DATABASE={config['database']};"
        f"UID={config['username']};"
        f"PWD={config['password']};"
        f"TrustServerCertificate=yes;"
    )
    connection.autocommit = True
    logger.info(f"Connected to SQL Server at {config['server']}:{config['port']}")
    return connection
