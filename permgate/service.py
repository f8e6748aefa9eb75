"""Host-facing permission service."""
from __future__ import annotations

from typing import Callable, Optional, Protocol
from uuid import UUID

from permgate.core.config import PermgateSettings
from permgate.core.permittable import Group, Individual
from permgate.core.store import LoadFailureHandler, PermissionStore
from permgate.storage import build_backend
from permgate.utils.logging import get_logger

logger = get_logger(__name__)

ActorFactory = Callable[..., Individual]


class ActorHost(Protocol):
    """What the embedding server must offer: a hook for new actors."""

    def set_actor_factory(self, factory: Optional[ActorFactory]) -> None:
        ...


class PermissionService:
    """Wire a :class:`PermissionStore` into a host's actor lifecycle.

    ``install`` preloads stored weights and gives the host a factory that
    builds and registers an :class:`Individual` per connected actor.
    ``uninstall`` detaches the factory and flushes every cached entity.
    """

    def __init__(
        self,
        store: PermissionStore,
        *,
        preload: bool = True,
        retain_individuals: bool = False,
    ) -> None:
        self.store = store
        self.preload = preload
        self.retain_individuals = retain_individuals
        self._host: Optional[ActorHost] = None

    @classmethod
    def from_settings(
        cls,
        settings: PermgateSettings,
        *,
        on_load_failure: Optional[LoadFailureHandler] = None,
    ) -> "PermissionService":
        store = PermissionStore(build_backend(settings.storage), on_load_failure=on_load_failure)
        return cls(
            store,
            preload=settings.cache.preload,
            retain_individuals=settings.cache.retain_individuals,
        )

    @property
    def installed(self) -> bool:
        return self._host is not None

    def install(self, host: ActorHost) -> None:
        if self.preload:
            self.store.preload()
        host.set_actor_factory(self.connect)
        self._host = host
        logger.info("permission service installed", extra={"backend": self.store.backend.name})

    def uninstall(self) -> None:
        """Detach from the host, then persist every cached entity and close the backend."""

        if self._host is not None:
            self._host.set_actor_factory(None)
            self._host = None
        try:
            self.store.flush()
        finally:
            self.store.close()
        logger.info("permission service uninstalled", extra={"backend": self.store.backend.name})

    def connect(self, actor_id: UUID, name: Optional[str] = None) -> Individual:
        individual = self.store.register_permittable(Individual(actor_id, name=name))
        logger.debug("actor connected", extra={"permittable_id": actor_id})
        return individual  # type: ignore[return-value]

    def disconnect(self, individual: Individual) -> None:
        self.store.unregister(individual)
        if not self.retain_individuals:
            self.store.evict(individual)
        logger.debug("actor disconnected", extra={"permittable_id": individual.permittable_id})

    def create_group(self, name: str, parent: Optional[Group] = None) -> Group:
        """Construct and register a group, returning the registered instance.

        If ``name`` is already registered the existing group is returned, with
        its parent replaced when ``parent`` is given.
        """

        registered = self.store.register_permittable(Group(name))
        if parent is not None:
            registered.set_parent(parent)
        return registered  # type: ignore[return-value]


__all__ = ["PermissionService", "ActorHost", "ActorFactory"]
