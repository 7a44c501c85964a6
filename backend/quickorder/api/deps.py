"""API dependencies for dependency injection."""

from typing import Annotated, Callable

from fastapi import Depends, Query

from quickorder.config import Settings, settings
from quickorder.context import Context
from quickorder.services.mirror_store import MirrorStore, get_mirror_store
from quickorder.services.sync_service import SyncService


def get_settings() -> Settings:
    return settings


AppSettings = Annotated[Settings, Depends(get_settings)]


def get_context(
    context: str | None = Query(
        default=None,
        description="Storefront context or alias (regular, distri1, naranjos2, virtual)",
    ),
) -> Context:
    """Resolve the context query parameter; anything unknown reads the virtual mirror."""
    return Context.from_alias(context)


CurrentContext = Annotated[Context, Depends(get_context)]


def get_store(context: CurrentContext, config: AppSettings) -> MirrorStore:
    return get_mirror_store(context, config)


Store = Annotated[MirrorStore, Depends(get_store)]


def get_sync_services(config: AppSettings) -> Callable[[Context], SyncService]:
    """Factory building the sync service of a context named in a request body."""

    def build(context: Context) -> SyncService:
        return SyncService(context, config=config, store=get_mirror_store(context, config))

    return build


SyncServices = Annotated[Callable[[Context], SyncService], Depends(get_sync_services)]
