"""
A simple CLI for running the server and inspecting the group tree.
"""

import asyncio
import os
import sys

import uvicorn
from structlog import get_logger

from siscodex.config.settings import Settings
from siscodex.core.group import AugmentedGroup
from siscodex.service.remote import RemoteRepository
from siscodex.service.tree import get_top_level_groups, snapshot_from_list


def run_server(**kwargs):
    for k, v in kwargs.items():
        os.environ[k] = v

    settings = Settings()
    uvicorn.run("siscodex.api.app:app", host=settings.host, port=settings.port)


def format_tree(groups: list[AugmentedGroup], locale: str, depth: int = 0) -> list[str]:
    lines = []

    for group in groups:
        attributes = " ".join(
            f"[{key}: {value}]"
            for key, values in group.attributes.items()
            for value in values
        )
        lines.append(
            f"{'  ' * depth}{group.localized_name(locale)} {attributes}".rstrip()
        )
        lines.extend(format_tree(group.children, locale=locale, depth=depth + 1))

    return lines


async def show_tree(settings: Settings, locale: str):
    repository = settings.create_repository()

    try:
        groups = snapshot_from_list(await repository.fetch_all(log=get_logger()))
    finally:
        if isinstance(repository, RemoteRepository):
            await repository.aclose()

    top_level = get_top_level_groups(
        groups,
        locale,
        separator=settings.name_separator,
        strict=settings.strict_hierarchy,
    )

    for line in format_tree(top_level, locale=locale):
        print(line)


def main():
    try:
        run = sys.argv[1] == "run"
        tree = sys.argv[1] == "tree"
        dev = run and sys.argv[2] == "dev"
        prod = run and sys.argv[2] == "prod"
    except IndexError:
        print(
            "Only supported commands are siscodex run dev, siscodex run prod, "
            "or siscodex tree [locale]"
        )
        exit(1)

    if dev:
        run_server(SISCODEX_REPOSITORY="mock")
    elif prod:
        run_server()
    elif tree:
        settings = Settings()
        locale = sys.argv[2] if len(sys.argv) > 2 else settings.default_locale
        asyncio.run(show_tree(settings, locale))
    else:
        print(f"Unknown command: {' '.join(sys.argv[1:])}")
        exit(1)
