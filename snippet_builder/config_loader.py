"""
配置加载器：将 YAML 配置文件解析为 Pydantic 模型。
"""

import logging
import os
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml
from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)


# ── 编辑器配置 ────────────────────────────────────────

class EditorSettings(BaseModel):
    grid_size: int = 20
    min_width: int = 100
    min_height: int = 100
    # 原版编辑器的硬上限
    max_width: int = 1200
    max_height: int = 800
    debounce_delay: float = 0.5  # 秒
    nav_button_width: int = 150
    nav_button_height: int = 60


# ── Page Store 配置 ──────────────────────────────────

class PageStoreSettings(BaseModel):
    base_url: str = "http://127.0.0.1:10000"
    timeout: float = 10.0
    db_path: Optional[str] = None  # 默认 $SNIPPET_BUILDER_ROOT/data/pages.json


# ── 初始页面 ──────────────────────────────────────────

class PageSeed(BaseModel):
    id: str
    name: str
    is_default: bool = False
    is_public: bool = True
    widgets: List[Dict[str, Any]] = Field(default_factory=list)


# ── 顶层配置 ──────────────────────────────────────────

class AppConfig(BaseModel):
    editor: EditorSettings = Field(default_factory=EditorSettings)
    page_store: PageStoreSettings = Field(default_factory=PageStoreSettings)
    pages: List[PageSeed] = Field(default_factory=list)

    def get_page_seed(self, page_id: str) -> Optional[PageSeed]:
        for p in self.pages:
            if p.id == page_id:
                return p
        return None


# ── Loading ──────────────────────────────────────────

_CONFIG_SEARCH_PATHS = [
    "config/config.yaml",
    "config.yaml",
]


def project_root() -> Path:
    return Path(os.getenv("SNIPPET_BUILDER_ROOT", "."))


def find_config_root() -> Path:
    """Find the root config file or directory."""
    base = project_root()
    config_dir = base / "config"
    if config_dir.is_dir():
        return config_dir

    for p in _CONFIG_SEARCH_PATHS:
        path = base / p
        if path.exists():
            return path

    return base


def deep_merge_dict(base: dict, update: dict) -> dict:
    """Deep merge two dictionaries. Lists under 'pages' are appended."""
    for k, v in update.items():
        if isinstance(v, dict) and k in base and isinstance(base[k], dict):
            base[k] = deep_merge_dict(base[k], v)
        elif isinstance(v, list) and k in base and isinstance(base[k], list) and k == "pages":
            base[k].extend(v)
        else:
            base[k] = v
    return base


def load_all_yamls(root: Path) -> dict:
    """加载并合并所有 YAML 文件（按文件名排序）。"""
    combined: Dict[str, Any] = {}

    files = []
    if root.is_file():
        files.append(root)
    elif root.is_dir():
        files.extend(root.glob("*.yaml"))
        files.extend(root.glob("*.yml"))
        files.sort()

    for f in files:
        try:
            with open(f, "r", encoding="utf-8") as fp:
                content = yaml.safe_load(fp)
        except (OSError, yaml.YAMLError) as e:
            logger.error(f"读取配置文件失败 {f}: {e}")
            continue
        if not content:
            continue
        if not isinstance(content, dict):
            logger.warning(f"配置文件 {f} 顶层不是映射，已跳过")
            continue
        deep_merge_dict(combined, content)

    return combined


def load_config(path: Optional[str | Path] = None) -> AppConfig:
    """
    Load and merge configuration from YAML files.
    """
    if path is None:
        path = find_config_root()
    path = Path(path)

    raw = load_all_yamls(path)
    return AppConfig.model_validate(raw)
