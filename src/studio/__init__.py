"""Theme Studio: live design token editing.

Subpackages:
 - ``studio.design``: color space conversion, token registry, theme CSS
 - ``studio.services``: editor engine, style roots, storage, event bus
 - ``studio.viewmodels``: headless view models for editor panels
 - ``studio.app``: editor state persistence and bootstrap
"""

__version__ = "0.1.0"
