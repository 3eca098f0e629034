"""
Versioned prompt template registry.

Templates use {{name}} placeholders. Rendering substitutes the supplied
variables literally and refuses to return text that still contains a
placeholder.
"""
import re
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from themis.core.errors import TemplateNotFoundError, UnresolvedTemplateVariableError
from themis.core.logging import get_logger

logger = get_logger(__name__)

PLACEHOLDER_PATTERN = re.compile(r"\{\{(\w+)\}\}")


class PromptTemplate(BaseModel):
    id: str
    name: str
    description: str = ""
    version: str
    template: str
    variables: List[str] = Field(default_factory=list)
    system_prompt: Optional[str] = None


class PromptRegistry:
    """Templates keyed by id, then by version."""

    def __init__(self) -> None:
        self._templates: Dict[str, Dict[str, PromptTemplate]] = {}

    def register(self, template: PromptTemplate) -> None:
        """Add a template; re-registering the same id and version replaces it."""
        self._templates.setdefault(template.id, {})[template.version] = template

    def get(self, template_id: str, version: Optional[str] = None) -> Optional[PromptTemplate]:
        """
        Look up a template.

        Without a version the lexicographically greatest version wins
        ("1.10.0" sorts before "1.9.0").
        """
        versions = self._templates.get(template_id)
        if not versions:
            return None
        if version is not None:
            return versions.get(version)
        return versions[max(versions)]

    def list(self) -> List[PromptTemplate]:
        return [t for versions in self._templates.values() for t in versions.values()]

    def get_system_prompt(self, template_id: str, version: Optional[str] = None) -> Optional[str]:
        template = self.get(template_id, version)
        return template.system_prompt if template else None

    def render(
        self,
        template_id: str,
        variables: Dict[str, str],
        version: Optional[str] = None,
    ) -> str:
        """
        Substitute variables into a template.

        Raises:
            TemplateNotFoundError: Unknown id (or id/version pair)
            UnresolvedTemplateVariableError: A placeholder had no value
        """
        template = self.get(template_id, version)
        if template is None:
            raise TemplateNotFoundError(template_id, version)

        rendered = template.template
        for key, value in variables.items():
            rendered = rendered.replace("{{" + key + "}}", str(value))

        unresolved = PLACEHOLDER_PATTERN.search(rendered)
        if unresolved:
            logger.warning(
                "prompt_variable_unresolved",
                template_id=template_id,
                version=template.version,
                variable=unresolved.group(1),
            )
            raise UnresolvedTemplateVariableError(unresolved.group(1), template_id)

        return rendered
