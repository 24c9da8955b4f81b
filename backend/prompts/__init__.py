"""
Prompt Management Module for the crop service.

- PromptTemplate: Template class with ${variable} substitution
- PromptManager: Versioned prompt loading with cascading fallback
"""

from backend.prompts.prompt_manager import PromptManager
from backend.prompts.prompt_template import PromptTemplate

__all__ = ['PromptTemplate', 'PromptManager']
