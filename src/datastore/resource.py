"""Resource descriptor: what is being imported and from where."""

from dataclasses import dataclass

DEFAULT_CHARSET = "utf-8"


@dataclass(frozen=True)
class Resource:
    """Identity, location and declared media type of an importable resource.

    ``location`` is a filesystem path or an http(s) URL. ``media_type`` may
    carry parameters, e.g. ``text/csv; charset=latin-1``.
    """

    id: str
    location: str
    media_type: str = "text/csv"

    @property
    def mime(self) -> str:
        return self.media_type.split(";", 1)[0].strip().lower()

    @property
    def charset(self) -> str:
        for param in self.media_type.split(";")[1:]:
            key, _, value = param.partition("=")
            if key.strip().lower() == "charset" and value.strip():
                return value.strip().strip('"')
        return DEFAULT_CHARSET

    @property
    def is_remote(self) -> bool:
        return self.location.startswith(("http://", "https://"))
