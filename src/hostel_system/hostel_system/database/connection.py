from __future__ import annotations

from dataclasses import dataclass

import mysql.connector
from mysql.connector import errors

from ..core.exceptions import StorageUnavailableError


@dataclass
class DBConfig:
    host: str
    port: int
    user: str
    password: str
    database: str
    connect_timeout: int = 10

    @classmethod
    def from_dict(cls, db_config: dict) -> "DBConfig":
        return cls(
            host=str(db_config["host"]),
            port=int(db_config.get("port", 3306)),
            user=str(db_config["user"]),
            password=str(db_config["password"]),
            database=str(db_config["database"]),
            connect_timeout=int(db_config.get("connect_timeout", 10)),
        )


class DatabaseConnection:
    """DB connection factory.

    Created once by the application factory and injected into repositories.
    Connections are short-lived: one per repository call or transaction.
    """

    def __init__(self, config: DBConfig):
        self._config = config
        self._closed = False

    @property
    def config(self) -> DBConfig:
        return self._config

    def connect(self):
        if self._closed:
            raise StorageUnavailableError("Database connection factory is closed")
        try:
            return mysql.connector.connect(
                host=self._config.host,
                port=int(self._config.port),
                user=self._config.user,
                password=self._config.password,
                database=self._config.database,
                connection_timeout=int(self._config.connect_timeout),
            )
        except (errors.InterfaceError, errors.OperationalError) as exc:
            raise StorageUnavailableError(f"Cannot connect to database: {exc}") from exc

    def close(self) -> None:
        self._closed = True
