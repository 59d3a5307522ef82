"""Plugin scanner -- discovers PLUGIN_META dicts under plugins/.

Each provider module declares a module-level PLUGIN_META. Dropping a new
module with one into plugins/<category>/ makes it show up in
`ruledesk plugin list` without touching the CLI.
"""

from __future__ import annotations

import importlib
import logging
from dataclasses import dataclass, field
from pathlib import Path

logger = logging.getLogger(__name__)

# Presentation order
CATEGORY_ORDER = ["market_data", "ai_provider"]

CATEGORY_LABELS = {
    "market_data": "Market Data Sources",
    "ai_provider": "Briefing Providers",
}

_PLUGINS_DIR = Path(__file__).resolve().parent.parent / "plugins"


@dataclass
class ConfigField:
    key: str
    label: str
    type: str = "string"  # secret | string | number | choice
    required: bool = False
    default: object = None
    env_var: str | None = None


@dataclass
class PluginInfo:
    """What a provider module says about itself."""

    name: str
    display_name: str
    description: str
    category: str
    class_name: str
    module_path: str  # e.g. "plugins.market_data.yahoo_finance"
    config_fields: list[ConfigField] = field(default_factory=list)

    @property
    def category_label(self) -> str:
        return CATEGORY_LABELS.get(self.category, self.category)

    @property
    def secret_env_var(self) -> str | None:
        """Environment variable holding the plugin's API key, if it needs one."""
        for f in self.config_fields:
            if f.type == "secret" and f.env_var:
                return f.env_var
        return None


def discover_plugins(plugins_dir: Path | None = None) -> dict[str, list[PluginInfo]]:
    """Category -> plugins, in presentation order, empty categories omitted."""
    plugins_dir = plugins_dir or _PLUGINS_DIR
    found: dict[str, list[PluginInfo]] = {cat: [] for cat in CATEGORY_ORDER}

    for filepath in sorted(plugins_dir.glob("*/*.py")):
        if filepath.name.startswith("_") or filepath.parent.name.startswith("_"):
            continue
        plugin = _load_plugin_meta(filepath, plugins_dir)
        if plugin is not None:
            found.setdefault(plugin.category, []).append(plugin)

    return {cat: plugins for cat, plugins in found.items() if plugins}


def _load_plugin_meta(filepath: Path, plugins_dir: Path) -> PluginInfo | None:
    """Import one module and read its PLUGIN_META."""
    relative = filepath.relative_to(plugins_dir.parent).with_suffix("")
    module_path = ".".join(relative.parts)

    try:
        module = importlib.import_module(module_path)
    except ImportError as e:
        logger.debug("Could not import %s: %s", module_path, e)
        return None

    meta = getattr(module, "PLUGIN_META", None)
    if not isinstance(meta, dict):
        return None

    return PluginInfo(
        name=meta.get("name", filepath.stem),
        display_name=meta.get("display_name", meta.get("name", filepath.stem)),
        description=meta.get("description", ""),
        category=meta.get("category", "unknown"),
        class_name=meta.get("class_name", ""),
        module_path=module_path,
        config_fields=[
            ConfigField(
                key=f.get("key", ""),
                label=f.get("label", f.get("key", "")),
                type=f.get("type", "string"),
                required=f.get("required", False),
                default=f.get("default"),
                env_var=f.get("env_var"),
            )
            for f in meta.get("config_fields", [])
        ],
    )


def list_all_plugins(plugins_dir: Path | None = None) -> list[PluginInfo]:
    return [p for plugins in discover_plugins(plugins_dir).values() for p in plugins]


def get_plugin(name: str, plugins_dir: Path | None = None) -> PluginInfo | None:
    """Find a plugin by its PLUGIN_META name."""
    for plugin in list_all_plugins(plugins_dir):
        if plugin.name == name:
            return plugin
    return None
