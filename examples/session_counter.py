"""
Example: two tracker contexts over the same object.

The "session" tracker keeps a click counter in a mapping owned by the caller
(standing in for a per-user profile); the "settings" tracker keeps the window
layout in files and persists it automatically at exit.

Run twice to see the layout restored from disk.
"""
import logging
from dataclasses import dataclass

from statetracker import (
    Event,
    MappingDataStore,
    PersistMode,
    SettingsTracker,
    tracked,
)

logger = logging.getLogger(__name__)

SESSION = "session"
SETTINGS = "settings"


@dataclass
class MainPage:
    counter: int = tracked(0, context=SESSION)
    width: int = tracked(800, context=SETTINGS)
    height: int = tracked(600, context=SETTINGS)

    def __post_init__(self):
        self.clicked = Event()

    def click(self):
        self.counter += 1
        self.clicked.fire(self)


def main():
    logging.basicConfig(level=logging.DEBUG)

    profile = {}
    session_tracker = SettingsTracker(
        data_store=MappingDataStore(profile, on_change=lambda: logger.info(f"profile saved ({len(profile)} keys)")),
        name=SESSION,
    )
    settings_tracker = SettingsTracker(name=SETTINGS)

    page = MainPage()

    session_config = session_tracker.configure(page).register_persist_trigger("clicked")
    session_config.apply()
    settings_tracker.configure(page).apply()

    assert session_config.mode is PersistMode.MANUAL
    logger.info(f"restored layout {page.width}x{page.height}")

    for _ in range(3):
        page.click()
    logger.info(f"counter={page.counter}, stored keys={sorted(profile)}")

    page.width, page.height = 1024, 768
    # settings_tracker persists the new layout when the interpreter exits


if __name__ == '__main__':
    main()
