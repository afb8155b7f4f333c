"""Shared CLI utilities."""

import asyncio
from typing import Awaitable, Callable, Optional, TypeVar

from rich.console import Console

from gateway.http import HttpGateway
from localstore.sqlite import SqliteSnapshotStore
from sync.notices import NoticeKind
from sync.session import LifelogSession

from .config import load_config, load_identity
from .config_models import LifelogConfig

console = Console()

T = TypeVar("T")

NOTICE_STYLE = {
    NoticeKind.SYNC_FAILED: "yellow",
    NoticeKind.REVERTED: "yellow",
    NoticeKind.AUTH_REQUIRED: "red",
    NoticeKind.OFFLINE: "dim",
    NoticeKind.INFO: "cyan",
}


def get_components(config: LifelogConfig | None = None) -> dict:
    """Build store, gateway and session from config and saved credentials."""
    config = config or load_config()
    store = SqliteSnapshotStore(config.paths.db_path)
    identity = load_identity(config.paths.credentials_file)
    gateway = HttpGateway(
        config.api.base_url,
        timeout=config.api.timeout,
        login_timeout=config.api.login_timeout,
    )
    session = LifelogSession(
        store,
        gateway=gateway,
        identity=identity,
        discard_stale=config.sync.discard_stale_confirmations,
        page_size=config.sync.page_size,
    )
    session.notices.subscribe(
        lambda n: console.print(f"[{NOTICE_STYLE.get(n.kind, 'dim')}]{n.message}[/]")
    )
    return {
        "config": config,
        "store": store,
        "gateway": gateway,
        "identity": identity,
        "session": session,
    }


def run_session(action: Optional[Callable[[LifelogSession], Awaitable[T]]] = None):
    """Load the session, run one action against it, close the gateway.

    With no action, returns the loaded session itself (for read-only views).
    """
    c = get_components()

    async def _main():
        try:
            await c["session"].load()
            if action is None:
                return c["session"]
            return await action(c["session"])
        finally:
            await c["gateway"].close()

    return asyncio.run(_main())
