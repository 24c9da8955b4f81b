"""
Prompt Manager - versioned crop prompts with cascading fallback.

Prompt files live in config/prompts/ as {version}-{mode}{suffix}.txt.
config/prompts.yaml declares the version cascade, the language suffixes
and the built-in templates used when no file matches.
"""

import logging
import threading
from pathlib import Path
from typing import Dict, List, Optional, Tuple

import yaml

from backend.prompts.prompt_template import PromptTemplate

logger = logging.getLogger(__name__)

CONFIG_DIR = Path(__file__).parent.parent.parent / "config"


class PromptManager:
    """
    Loads crop prompts by mode and language.

    Lookup order for load_prompt("aesthetic", "en") with the default config:
    v1.1-aesthetic_English.txt, v0.5-aesthetic.txt, v0.4-aesthetic.txt,
    v0.3-aesthetic.txt, v0.2-aesthetic.txt, then the built-in template.
    """

    def __init__(
        self,
        config_path: Optional[str] = None,
        prompts_dir: Optional[str] = None,
    ):
        """
        Initialize the manager.

        Args:
            config_path: Path to prompts.yaml (default: config/prompts.yaml)
            prompts_dir: Directory with versioned prompt files (default: config/prompts)

        Raises:
            FileNotFoundError: If prompts.yaml is not found
            yaml.YAMLError: If YAML parsing fails
        """
        self.config_path = Path(config_path) if config_path else CONFIG_DIR / "prompts.yaml"
        self.prompts_dir = Path(prompts_dir) if prompts_dir else CONFIG_DIR / "prompts"

        self.cascade: List[str] = []
        self.localized_versions: List[str] = []
        self.language_suffixes: Dict[str, str] = {}
        self.templates: Dict[str, PromptTemplate] = {}
        self._resolved: Dict[Tuple[str, str], PromptTemplate] = {}
        self._lock = threading.Lock()

        self._load_yaml_config()

        logger.info(
            f"PromptManager initialized: cascade={self.cascade}, "
            f"{len(self.templates)} built-in templates, dir={self.prompts_dir}"
        )

    def _load_yaml_config(self) -> None:
        if not self.config_path.exists():
            error_msg = (
                f"REQUIRED: prompts.yaml not found at {self.config_path}\n"
                "The prompt configuration file is required for the service to work."
            )
            logger.error(error_msg)
            raise FileNotFoundError(error_msg)

        with open(self.config_path, 'r', encoding='utf-8') as f:
            config = yaml.safe_load(f) or {}

        self.cascade = list(config.get('cascade', []))
        self.localized_versions = list(config.get('localized_versions', []))
        self.language_suffixes = {
            str(k): (v or "") for k, v in (config.get('language_suffixes') or {}).items()
        }

        for prompt_data in config.get('templates', []):
            try:
                template = PromptTemplate.from_dict(prompt_data)
            except KeyError as e:
                logger.error(f"Skipping prompt without required field {e} in {self.config_path}")
                continue
            self.templates[template.name] = template

        if not self.cascade:
            logger.warning("No prompt cascade configured, only built-in templates will be used")

    def candidate_names(self, mode: str, language: str) -> List[str]:
        """File stems tried for (mode, language), in order."""
        suffix = self.language_suffixes.get(language, "")
        names = []
        for version in self.cascade:
            if version in self.localized_versions and suffix:
                names.append(f"{version}-{mode}_{suffix}")
            else:
                names.append(f"{version}-{mode}")
        return names

    def load_prompt(self, mode: str, language: str) -> PromptTemplate:
        """
        Resolve the prompt for a crop mode and language.

        Args:
            mode: Crop mode (e.g. "aesthetic")
            language: Language code (en, zh, es, ja)

        Returns:
            PromptTemplate; its version is "builtin" when no file matched
        """
        cache_key = (mode, language)
        with self._lock:
            cached = self._resolved.get(cache_key)
        if cached is not None:
            return cached

        template = self._resolve(mode, language)
        with self._lock:
            self._resolved[cache_key] = template
        return template

    def _resolve(self, mode: str, language: str) -> PromptTemplate:
        for name in self.candidate_names(mode, language):
            path = self.prompts_dir / f"{name}.txt"
            try:
                text = path.read_text(encoding='utf-8')
            except FileNotFoundError:
                logger.warning(f"Prompt file {path.name} not found, trying next version")
                continue

            version = name.split("-", 1)[0]
            logger.info(f"Using prompt {path.name} (language: {language})")
            return PromptTemplate(
                name=name,
                template=text,
                description=f"{mode} crop prompt {version}",
                category="crop",
                language=language,
                version=version,
                metadata={"source": str(path)},
            )

        builtin = self.get_template(f"builtin-{mode}") or self.get_template("builtin-aesthetic")
        if builtin is None:
            raise FileNotFoundError(
                f"No prompt file or built-in template available for mode '{mode}'"
            )
        logger.info(f"Using built-in prompt template for mode '{mode}'")
        return builtin

    def get_template(self, name: str) -> Optional[PromptTemplate]:
        """
        Get a template declared in prompts.yaml by name.

        Returns:
            PromptTemplate if found, None otherwise
        """
        template = self.templates.get(name)
        if template is None:
            logger.warning(f"Template '{name}' not found")
        return template

    def available_versions(self, mode: str) -> List[str]:
        """Prompt file stems present on disk for a mode."""
        if not self.prompts_dir.exists():
            return []
        return sorted(p.stem for p in self.prompts_dir.glob(f"*-{mode}*.txt"))

    def reload(self) -> None:
        """Re-read prompts.yaml and forget resolved prompts."""
        with self._lock:
            self._resolved.clear()
            self.templates.clear()
        self._load_yaml_config()
        logger.info("PromptManager reloaded")

    def __len__(self) -> int:
        return len(self.templates)

    def __repr__(self) -> str:
        return f"PromptManager(cascade={self.cascade}, {len(self.templates)} templates)"
