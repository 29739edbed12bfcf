from .embed_url import DEFAULT_BASE_URL, DEFAULT_SERVER, build_embed_url

__all__ = ["DEFAULT_BASE_URL", "DEFAULT_SERVER", "build_embed_url"]
