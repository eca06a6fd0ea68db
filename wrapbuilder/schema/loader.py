"""YAML loader - serialization for every artefact the pipeline hands around.

Channel workspaces, override forms, warehouse payloads and derived decks are
saved as human-readable YAML so they can be reviewed, diffed and edited.
"""

from pathlib import Path

import yaml

from .forms import AdsFormData, EcommFormData, SocialFormData
from .models import ChannelData, Slide
from .warehouse import WarehouseAdsData

FORM_TYPES = {
    "ads": AdsFormData,
    "ecommerce": EcommFormData,
    "social": SocialFormData,
}


def save_yaml(data, path: str | Path) -> None:
    """Write plain data to a YAML file, creating parent directories."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        yaml.dump(data, f, default_flow_style=False, sort_keys=False,
                  allow_unicode=True, width=120)


def load_yaml(path: str | Path):
    """Read a YAML file; an empty file loads as None."""
    path = Path(path)
    with open(path, encoding="utf-8") as f:
        return yaml.safe_load(f)


# ---------------------------------------------------------------------------
# Channels
# ---------------------------------------------------------------------------

def save_channels(channels: list[ChannelData], path: str | Path) -> None:
    save_yaml({"channels": [c.to_dict() for c in channels]}, path)


def load_channels(path: str | Path) -> list[ChannelData]:
    data = load_yaml(path) or {}
    return [ChannelData.from_dict(c) for c in data.get("channels", [])]


# ---------------------------------------------------------------------------
# Forms and warehouse input
# ---------------------------------------------------------------------------

def load_form(path: str | Path, wrap_type: str = "ads"):
    """Load an override form of the given wrap type."""
    if wrap_type not in FORM_TYPES:
        raise ValueError(
            f"Unknown wrap type '{wrap_type}'. "
            f"Valid types: {', '.join(sorted(FORM_TYPES))}"
        )
    return FORM_TYPES[wrap_type].from_dict(load_yaml(path) or {})


def save_form(form, path: str | Path) -> None:
    save_yaml(form.to_dict(), path)


def load_warehouse(path: str | Path) -> WarehouseAdsData:
    return WarehouseAdsData.from_dict(load_yaml(path) or {})


# ---------------------------------------------------------------------------
# Slides
# ---------------------------------------------------------------------------

def save_slides(slides: list[Slide], path: str | Path) -> None:
    save_yaml({"slides": [s.to_dict() for s in slides]}, path)


def load_slides(path: str | Path) -> list[Slide]:
    data = load_yaml(path) or {}
    return [Slide.from_dict(s) for s in data.get("slides", [])]
