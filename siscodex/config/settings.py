"""
Main settings object.
"""

from pathlib import Path
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict

from siscodex.service.mock import MockRepository, example_repository
from siscodex.service.remote import RemoteRepository


class Settings(BaseSettings):
    # Which group/term repository backs the engine. `mock` is for
    # development and testing only.
    repository: Literal["remote", "mock"] = "remote"
    mock_data_file: Path | None = None

    api_base: str = "http://localhost:8080/api/v1"
    api_token: str | None = None
    request_timeout: float = 30.0

    default_locale: str = "en"
    name_separator: str = " ⭢ "
    # Reject groups whose parent is missing from the snapshot instead of
    # treating them as roots
    strict_hierarchy: bool = False

    host: str = "0.0.0.0"
    port: int = 8000

    model_config = SettingsConfigDict(env_prefix="SISCODEX_", env_file=".env")

    def remote_repository(self) -> RemoteRepository:
        return RemoteRepository(
            base_url=self.api_base,
            token=self.api_token,
            timeout=self.request_timeout,
        )

    def mock_repository(self) -> MockRepository:
        if self.mock_data_file is not None:
            return MockRepository.from_file(self.mock_data_file)
        return example_repository()

    def create_repository(self) -> RemoteRepository | MockRepository:
        match self.repository:
            case "remote":
                return self.remote_repository()
            case "mock":
                return self.mock_repository()
            case _:
                raise ValueError
