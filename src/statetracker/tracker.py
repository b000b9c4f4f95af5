"""
SettingsTracker: registry of tracking configurations.

Keeps one TrackingConfiguration per live target (looked up by identity) and
runs bulk operations over them. Configurations are never reaped
automatically: call remove_configuration() when a target is disposed of.
Every bulk operation skips configurations whose target has been collected.

Thread safety: Not thread-safe (all operations expected on one thread).
"""
import atexit
import logging
from typing import Any, Callable, List, Optional

from statetracker.config import get_default_serializer_type
from statetracker.configuration import PersistMode, TrackingConfiguration
from statetracker.exceptions import NotConfiguredError
from statetracker.object_store import ObjectStore
from statetracker.serializers import Serializer
from statetracker.stores import DataStore, FileDataStore

logger = logging.getLogger(__name__)

ShutdownHook = Callable[[Callable[[], None]], Any]


class SettingsTracker:
    """Registry that configures, applies and persists tracked objects.

    Args:
        object_store: Store for serialized values. When omitted, one is built
            from ``data_store`` and ``serializer``.
        data_store: Backing store used when ``object_store`` is omitted;
            defaults to a FileDataStore in the configured storage directory.
        serializer: Serializer used when ``object_store`` is omitted;
            defaults to an instance of the configured serializer type.
        name: Tracker context. Only markers for this context are honoured.
        shutdown_hook: Called once with persist_automatic_targets so it runs
            on process exit. Defaults to atexit.register.
    """

    def __init__(
        self,
        object_store: Optional[ObjectStore] = None,
        *,
        data_store: Optional[DataStore] = None,
        serializer: Optional[Serializer] = None,
        name: Optional[str] = None,
        shutdown_hook: ShutdownHook = atexit.register,
    ):
        if object_store is None:
            object_store = ObjectStore(
                data_store if data_store is not None else FileDataStore(),
                serializer if serializer is not None else get_default_serializer_type()(),
            )
        self.object_store = object_store
        self.name = name
        self._configurations: List[TrackingConfiguration] = []
        self._shutdown_hook = shutdown_hook
        self._wire_up_automatic_persist()

    def __repr__(self) -> str:
        return f"<SettingsTracker name={self.name!r} configurations={len(self._configurations)}>"

    def _wire_up_automatic_persist(self) -> None:
        """Subscribe to the shutdown signal. Override to hook a different event loop."""
        self._shutdown_hook(self.persist_automatic_targets)

    @property
    def configurations(self) -> List[TrackingConfiguration]:
        """Snapshot of all registered configurations, dead targets included."""
        return list(self._configurations)

    # ========== REGISTRATION ==========

    def configure(self, target: Any) -> TrackingConfiguration:
        """Get the tracking configuration for ``target``, creating it on first call."""
        config = self.find_existing_config(target)
        if config is None:
            config = TrackingConfiguration(target, self)
            self._configurations.append(config)
            logger.debug(f"Registered tracking configuration: tracker={self.name!r}, {config!r}")
        return config

    def find_existing_config(self, target: Any) -> Optional[TrackingConfiguration]:
        """Configuration whose live target is ``target`` (identity), or None."""
        if target is None:
            return None
        for config in self._configurations:
            if config.target is target:
                return config
        return None

    def remove_configuration(self, config: TrackingConfiguration) -> None:
        """Unregister a configuration. Unknown configurations are ignored."""
        if config in self._configurations:
            self._configurations.remove(config)
            logger.debug(f"Removed tracking configuration: {config!r}")

    def _require_config(self, target: Any) -> TrackingConfiguration:
        config = self.find_existing_config(target)
        if config is None:
            raise NotConfiguredError(
                f"{type(target).__name__} instance is not configured for tracking on {self!r}"
            )
        return config

    # ========== APPLY / PERSIST ==========

    def apply_state(self, target: Any) -> None:
        """Apply stored state to a configured target."""
        self._require_config(target).apply()

    def persist_state(self, target: Any) -> None:
        """Persist the state of a configured target."""
        self._require_config(target).persist()

    def apply_all_state(self) -> None:
        """Apply stored state to every registered configuration."""
        for config in list(self._configurations):
            config.apply()

    def persist_automatic_targets(self) -> None:
        """Persist every live configuration in AUTOMATIC mode."""
        targets = [
            config for config in self._configurations
            if config.mode is PersistMode.AUTOMATIC and config.is_alive
        ]
        logger.info(f"Persisting {len(targets)} automatic target(s) for tracker {self.name!r}")
        for config in targets:
            config.persist()

    # ========== TYPE-SCOPED QUERIES ==========

    def find_existing_configs_by_type(self, target: Any) -> List[TrackingConfiguration]:
        """Live configurations whose target has exactly ``target``'s runtime type."""
        target_type = type(target)
        result = []
        for config in self._configurations:
            other = config.target
            if other is not None and type(other) is target_type:
                result.append(config)
        return result

    def apply_all_by_type(self, target: Any, except_this_target: bool = True) -> None:
        """Re-apply stored state to sibling instances of ``target``'s type.

        Uses just_apply(), so the siblings' lifecycle events do not fire.
        """
        configs = self.find_existing_configs_by_type(target)
        if except_this_target:
            configs = [config for config in configs if config.target is not target]
        logger.debug(f"Re-applying state to {len(configs)} {type(target).__name__} instance(s)")
        for config in configs:
            config.just_apply()
