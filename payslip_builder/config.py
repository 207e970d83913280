from __future__ import annotations

import json
from dataclasses import dataclass
from datetime import timedelta
from pathlib import Path
from typing import Any, NamedTuple

from payslip_builder.utils.contracts import validate_payload

SETTINGS_SCHEMA = "settings"
DEFAULT_LOCALE = "UK"


class LocaleConfig(NamedTuple):
    currency: str
    date_format: str
    tax_year_start: int  # month, 1-12


LOCALES: dict[str, LocaleConfig] = {
    "UK": LocaleConfig(currency="£", date_format="%d/%m/%Y", tax_year_start=4),
    "US": LocaleConfig(currency="$", date_format="%m/%d/%Y", tax_year_start=1),
}


def locale_config(locale: str | None) -> LocaleConfig:
    key = (locale or DEFAULT_LOCALE).upper()
    if key not in LOCALES:
        raise KeyError(f"Unknown locale: {locale}. Expected one of {', '.join(sorted(LOCALES))}.")
    return LOCALES[key]


@dataclass
class Settings:
    locale: str = DEFAULT_LOCALE
    draft_ttl_hours: float = 24
    store_path: Path = Path("payslips.json")
    draft_dir: Path = Path(".payslip_drafts")
    owner_id: str = "local"

    @property
    def locale_config(self) -> LocaleConfig:
        return locale_config(self.locale)

    @property
    def draft_ttl(self) -> timedelta:
        return timedelta(hours=self.draft_ttl_hours)


def load_settings(path: Path | None) -> Settings:
    """Read settings from a JSON file. Missing file or ``None`` yields defaults."""
    if path is None or not path.exists():
        return Settings()

    with path.open("r", encoding="utf-8") as handle:
        payload: dict[str, Any] = json.load(handle)
    validate_payload(payload, SETTINGS_SCHEMA)

    settings = Settings()
    if "locale" in payload:
        settings.locale = payload["locale"]
    if "draft_ttl_hours" in payload:
        settings.draft_ttl_hours = float(payload["draft_ttl_hours"])
    if "store_path" in payload:
        settings.store_path = Path(payload["store_path"]).expanduser()
    if "draft_dir" in payload:
        settings.draft_dir = Path(payload["draft_dir"]).expanduser()
    if "owner_id" in payload:
        settings.owner_id = payload["owner_id"]
    return settings
