"""VidFast embed URL builder.

Maps a MediaRequest to the canonical embed page URL::

    {base}/movie/{id}?autoPlay=true&server={server}
    {base}/tv/{id}/{season}/{episode}?autoPlay=true&server={server}

The result is deterministic and doubles as the manifest cache key, so no
normalisation is applied beyond what is shown above.
"""

from __future__ import annotations

from urllib.parse import quote, urlencode

from manifestarr.domain.entities.media import InvalidRequest, MediaRequest, MediaType

DEFAULT_BASE_URL = "https://vidfast.pro"
DEFAULT_SERVER = "Vfast"


def _require_positive(name: str, value: object) -> int:
    if value is None or isinstance(value, bool):
        raise InvalidRequest(f"{name} is required for tv episodes")
    try:
        number = int(value)  # type: ignore[call-overload]
    except (TypeError, ValueError):
        raise InvalidRequest(f"{name} must be an integer, got {value!r}") from None
    if number < 1:
        raise InvalidRequest(f"{name} must be >= 1, got {number}")
    return number


def build_embed_url(
    request: MediaRequest,
    *,
    base_url: str = DEFAULT_BASE_URL,
    default_server: str = DEFAULT_SERVER,
    autoplay: bool = True,
) -> str:
    """Return the canonical embed URL for *request*.

    Raises:
        InvalidRequest: Unknown media type, empty id, or a tv episode
            without a valid season/episode.
    """
    try:
        media_type = MediaType(request.media_type)
    except ValueError:
        raise InvalidRequest(f"Invalid type: {request.media_type!r}") from None

    media_id = str(request.media_id).strip()
    if not media_id:
        raise InvalidRequest("id must not be empty")

    params: dict[str, str] = {}
    if autoplay:
        params["autoPlay"] = "true"
    server = request.server or default_server
    if server:
        params["server"] = server
    query = urlencode(params)

    base = base_url.rstrip("/")
    quoted_id = quote(media_id, safe="")

    if media_type is MediaType.MOVIE:
        path = f"{base}/movie/{quoted_id}"
    else:
        season = _require_positive("season", request.season)
        episode = _require_positive("episode", request.episode)
        path = f"{base}/tv/{quoted_id}/{season}/{episode}"

    return f"{path}?{query}" if query else path
