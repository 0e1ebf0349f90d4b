"""Prompt Template Loader - Utilities for loading and formatting prompt templates."""

from pathlib import Path


PROMPTS_DIR = Path(__file__).parent


def load_prompt(category: str, name: str) -> str:
    """
    Load a prompt template from the prompts directory.

    Args:
        category: The category folder (e.g., 'consensus')
        name: The prompt file name without extension (e.g., 'context')

    Returns:
        The prompt template as a string

    Raises:
        FileNotFoundError: If the prompt file doesn't exist
    """
    path = PROMPTS_DIR / category / f"{name}.md"
    if not path.exists():
        raise FileNotFoundError(f"Prompt not found: {category}/{name}")
    return path.read_text(encoding="utf-8")


def load_and_format(category: str, name: str, **kwargs) -> str:
    """
    Load a prompt template and format it with variables.

    Uses Python's str.format() for variable substitution, so the
    template's placeholders are in {variable_name} format. Substituted
    values are inserted verbatim.

    Args:
        category: The category folder (e.g., 'consensus')
        name: The prompt file name without extension
        **kwargs: Variable values to substitute

    Returns:
        The formatted prompt string
    """
    return load_prompt(category, name).format(**kwargs).strip()
