"""
Prompt Template class with ${variable} substitution.

Crop prompts embed literal JSON examples, so placeholders use the
${name} form instead of str.format braces.
"""

import logging
import re
from typing import Any, Dict, List, Optional, Tuple

logger = logging.getLogger(__name__)

_PLACEHOLDER = re.compile(r"\$\{(\w+)\}")


class PromptTemplate:
    """
    Represents a prompt template with variable substitution.

    Placeholders look like ${originalWidth}.
    """

    def __init__(
        self,
        name: str,
        template: str,
        description: str = "",
        category: str = "crop",
        language: str = "multi",
        version: str = "builtin",
        variables: Optional[List[str]] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ):
        """
        Initialize a prompt template.

        Args:
            name: Unique identifier for the template (e.g. "v1.1-aesthetic_English")
            template: Template string with ${variable} placeholders
            description: Human-readable description
            category: Category (crop, analyze, debug)
            language: Language code (en, zh, es, ja, multi)
            version: Prompt version the template came from
            variables: Variable names (auto-detected if None)
            metadata: Additional metadata (source path, tags, etc.)
        """
        self.name = name
        self.template = template
        self.description = description
        self.category = category
        self.language = language
        self.version = version
        self.metadata = metadata or {}
        self.variables = (
            variables if variables is not None else self._extract_variables()
        )

    def _extract_variables(self) -> List[str]:
        """Extract placeholder names in order of first appearance."""
        seen: List[str] = []
        for match in _PLACEHOLDER.findall(self.template):
            if match not in seen:
                seen.append(match)
        return seen

    def render(self, strict: bool = False, **kwargs: Any) -> str:
        """
        Substitute placeholders with the given values.

        Args:
            strict: Raise if any placeholder has no value
            **kwargs: Variable values

        Returns:
            Rendered prompt; unknown placeholders are left as-is unless strict

        Raises:
            KeyError: If strict and required variables are missing
        """
        if strict:
            is_valid, missing = self.validate(kwargs)
            if not is_valid:
                raise KeyError(
                    f"Missing required variables for template '{self.name}': {missing}"
                )

        def substitute(match: "re.Match[str]") -> str:
            key = match.group(1)
            return str(kwargs[key]) if key in kwargs else match.group(0)

        return _PLACEHOLDER.sub(substitute, self.template)

    def validate(self, variables: Dict[str, Any]) -> Tuple[bool, List[str]]:
        """
        Check that all placeholders have values.

        Returns:
            Tuple of (is_valid, list_of_missing_variables)
        """
        missing = [name for name in self.variables if name not in variables]
        return not missing, missing

    def to_dict(self) -> Dict[str, Any]:
        """Convert template to dictionary for serialization."""
        return {
            'name': self.name,
            'template': self.template,
            'description': self.description,
            'category': self.category,
            'language': self.language,
            'version': self.version,
            'variables': self.variables,
            'metadata': self.metadata,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'PromptTemplate':
        """Create template from dictionary."""
        return cls(
            name=data['name'],
            template=data['template'],
            description=data.get('description', ''),
            category=data.get('category', 'crop'),
            language=data.get('language', 'multi'),
            version=data.get('version', 'builtin'),
            variables=data.get('variables'),
            metadata=data.get('metadata', {}),
        )

    def __repr__(self) -> str:
        return f"PromptTemplate(name='{self.name}', version='{self.version}', variables={self.variables})"
