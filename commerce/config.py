from __future__ import annotations

import json
import os
from dataclasses import dataclass
from pathlib import Path

import streamlit as st
from dotenv import load_dotenv

CONFIG_FILE_NAME = "settings.json"
ENV_DATA_DIR = "COMMERCE_DATA_DIR"
SESSION_DATA_DIR_KEY = "commerce_data_dir"

load_dotenv()


@dataclass(frozen=True)
class Settings:
    data_dir: Path
    db_path: Path
    store_name: str = "Swaadha"
    currency: str = "INR"
    free_shipping_threshold: float = 500.0
    low_stock_threshold: int = 20
    strict_stock: bool = True
    admin_email: str = "admin@swaadha.in"
    admin_password: str = "Admin@123"
    razorpay_key_id: str = ""
    razorpay_key_secret: str = ""
    log_level: str = "INFO"


def _default_data_dir() -> Path:
    return Path.home() / ".swaadha_commerce"


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def _load_persisted_settings(data_dir: Path) -> dict:
    cfg = data_dir / CONFIG_FILE_NAME
    if cfg.exists():
        try:
            return json.loads(cfg.read_text(encoding="utf-8"))
        except (OSError, ValueError):
            return {}
    return {}


def persist_data_dir(data_dir_str: str) -> None:
    data_dir = Path(data_dir_str).expanduser().resolve()
    data_dir.mkdir(parents=True, exist_ok=True)

    cfg = data_dir / CONFIG_FILE_NAME
    payload = {"data_dir": str(data_dir)}
    cfg.write_text(json.dumps(payload, indent=2), encoding="utf-8")

    # Also remember it in the default folder so the next start picks it up
    default_dir = _default_data_dir()
    default_dir.mkdir(parents=True, exist_ok=True)
    (default_dir / CONFIG_FILE_NAME).write_text(json.dumps(payload, indent=2), encoding="utf-8")

    st.session_state[SESSION_DATA_DIR_KEY] = str(data_dir)


def resolve_data_dir() -> Path:
    # Priority order:
    # 1) Session state (set via Data Management page)
    # 2) Environment variable
    # 3) Persisted settings in default folder
    # 4) Default folder
    if SESSION_DATA_DIR_KEY in st.session_state:
        return Path(st.session_state[SESSION_DATA_DIR_KEY]).expanduser().resolve()
    if os.getenv(ENV_DATA_DIR):
        return Path(os.getenv(ENV_DATA_DIR, "")).expanduser().resolve()
    default_dir = _default_data_dir()
    persisted = _load_persisted_settings(default_dir)
    return Path(persisted.get("data_dir", default_dir)).expanduser().resolve()


def build_settings(data_dir: Path) -> Settings:
    data_dir.mkdir(parents=True, exist_ok=True)
    return Settings(
        data_dir=data_dir,
        db_path=data_dir / "commerce.db",
        store_name=os.getenv("COMMERCE_STORE_NAME", "Swaadha"),
        currency=os.getenv("COMMERCE_CURRENCY", "INR"),
        free_shipping_threshold=float(os.getenv("COMMERCE_FREE_SHIPPING_THRESHOLD", "500")),
        low_stock_threshold=int(os.getenv("COMMERCE_LOW_STOCK_THRESHOLD", "20")),
        strict_stock=_env_bool("COMMERCE_STRICT_STOCK", True),
        admin_email=os.getenv("COMMERCE_ADMIN_EMAIL", "admin@swaadha.in"),
        admin_password=os.getenv("COMMERCE_ADMIN_PASSWORD", "Admin@123"),
        razorpay_key_id=os.getenv("RAZORPAY_KEY_ID", ""),
        razorpay_key_secret=os.getenv("RAZORPAY_KEY_SECRET", ""),
        log_level=os.getenv("COMMERCE_LOG_LEVEL", "INFO").upper(),
    )


@st.cache_resource
def _settings_for(data_dir: str) -> Settings:
    return build_settings(Path(data_dir))


def get_settings() -> Settings:
    return _settings_for(str(resolve_data_dir()))
