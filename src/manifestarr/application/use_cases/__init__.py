from .resolve_manifest import ResolveManifestUseCase

__all__ = ["ResolveManifestUseCase"]
