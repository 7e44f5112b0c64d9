__version__ = "0.1.0"


def active_overlays(*, config: str | None = None) -> list[str]:
    from .config import load_settings
    from .overlay import OverlayManager

    manager = OverlayManager(load_settings(config))
    return [overlay.resolved_path for overlay in manager.find_all()]


def patch(
    staged_dir: str,
    *,
    config: str | None = None,
) -> int:
    """Apply an installed tree to the running system, return the change count."""
    from .config import load_settings
    from .overlay import OverlayManager
    from .patch import PatchEngine

    settings = load_settings(config)
    engine = PatchEngine(
        OverlayManager(settings),
        system_root=settings.system_root,
        skip_patterns=settings.skip_patterns,
    )
    return engine.apply(staged_dir).changed


__all__ = [
    "__version__",
    "active_overlays",
    "patch",
]
