"""Application layer: editor state persistence and bootstrap.

Import ``create_editor`` from ``studio.app.bootstrap`` directly.
"""

from .config_store import (  # noqa: F401
    EditorConfig,
    load_config,
    save_config,
    CONFIG_VERSION,
)

__all__ = ["EditorConfig", "load_config", "save_config", "CONFIG_VERSION"]
