"""
CLI Configuration Manager for Library Desk
Keeps user preferences and the acting user/staff ids passed to every borrow.
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, Optional

from rich.console import Console

from libdesk.config import settings

logger = logging.getLogger(__name__)
console = Console()


class CLIConfig:
    """Manages CLI configuration and user preferences."""

    def __init__(self, config_dir: Optional[Path] = None):
        default_dir = Path(settings.cli_config_dir) if settings.cli_config_dir else Path.home() / ".library-desk"
        self.config_dir = Path(config_dir) if config_dir else default_dir
        self.config_file = self.config_dir / "config.json"
        self._config: Optional[Dict[str, Any]] = None

    @property
    def config(self) -> Dict[str, Any]:
        if self._config is None:
            self.load_config()
        return self._config

    def load_config(self) -> None:
        """Load configuration from file or create default."""
        if self.config_file.exists():
            try:
                with open(self.config_file, 'r', encoding='utf-8') as f:
                    self._config = json.load(f)
                return
            except (OSError, json.JSONDecodeError) as e:
                logger.warning(f"Could not load CLI config {self.config_file}: {e}")
        self.create_default_config()

    @staticmethod
    def default_config() -> Dict[str, Any]:
        return {
            "acting": {
                "user_id": settings.default_user_id,
                "staff_id": settings.default_staff_id,
            },
            "preferences": {
                "output_mode": "plain",
                "report_author": settings.report_author,
            },
        }

    def create_default_config(self) -> None:
        self._config = self.default_config()
        self.save_config()

    def save_config(self) -> None:
        try:
            self.config_dir.mkdir(parents=True, exist_ok=True)
            with open(self.config_file, 'w', encoding='utf-8') as f:
                json.dump(self._config, f, indent=2, ensure_ascii=False)
        except OSError as e:
            console.print(f"[red]Could not save config: {e}[/]")

    def get(self, key: str, default: Any = None) -> Any:
        """Get configuration value using dot notation (e.g., 'acting.staff_id')."""
        value: Any = self.config
        for k in key.split('.'):
            if isinstance(value, dict) and k in value:
                value = value[k]
            else:
                return default
        return value

    def set(self, key: str, value: Any) -> None:
        """Set configuration value using dot notation."""
        keys = key.split('.')
        config = self.config
        for k in keys[:-1]:
            config = config.setdefault(k, {})
        config[keys[-1]] = value
        self.save_config()

    def _acting_id(self, key: str, default: int) -> int:
        value = self.get(key, default)
        try:
            return int(value)
        except (TypeError, ValueError):
            logger.warning(f"Ignoring non-numeric {key}={value!r}; using {default}")
            return default

    def acting_ids(self) -> tuple:
        """(user_id, staff_id) used when a borrow command does not name them."""
        return (
            self._acting_id("acting.user_id", settings.default_user_id),
            self._acting_id("acting.staff_id", settings.default_staff_id),
        )

    def set_acting_ids(self, user_id: Optional[int] = None, staff_id: Optional[int] = None) -> None:
        if user_id is not None:
            self.set("acting.user_id", int(user_id))
        if staff_id is not None:
            self.set("acting.staff_id", int(staff_id))

    def reset_to_default(self) -> None:
        self.create_default_config()
        console.print("[green]Configuration reset to default values[/]")

    def show_config(self) -> None:
        """Display current configuration."""
        from rich.tree import Tree

        tree = Tree("Library Desk CLI Configuration", style="bold blue")
        for section, values in self.config.items():
            section_tree = tree.add(f"[bold cyan]{section.title()}[/]")
            if isinstance(values, dict):
                for key, value in values.items():
                    section_tree.add(f"[yellow]{key}[/]: [white]{value}[/]")
            else:
                section_tree.add(f"[white]{values}[/]")
        console.print(tree)
        console.print(f"\n[dim]Config file: {self.config_file}[/]")


# Global config instance; the file is only touched on first access
cli_config = CLIConfig()
