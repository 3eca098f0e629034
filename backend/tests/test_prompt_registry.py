"""
Unit tests for PromptRegistry and the default templates.
"""
import pytest

from themis.core.errors import TemplateNotFoundError, UnresolvedTemplateVariableError
from themis.services.llm.prompt_registry import PromptRegistry, PromptTemplate
from themis.services.llm.prompts import DEFAULT_PROMPTS, create_default_registry


def _template(version="1.0.0", template="hello {{x}}", system_prompt=None):
    return PromptTemplate(
        id="greeting",
        name="Greeting",
        version=version,
        template=template,
        variables=["x"],
        system_prompt=system_prompt,
    )


def test_render_substitutes_variables():
    registry = PromptRegistry()
    registry.register(_template())
    assert registry.render("greeting", {"x": "world"}) == "hello world"


def test_render_reports_first_unresolved_variable():
    registry = PromptRegistry()
    registry.register(_template(template="{{x}} and {{y}}"))

    with pytest.raises(UnresolvedTemplateVariableError) as exc_info:
        registry.render("greeting", {"x": "a"})

    assert exc_info.value.variable == "y"
    assert str(exc_info.value) == "Unresolved variable: y"


def test_render_unknown_template():
    with pytest.raises(TemplateNotFoundError):
        PromptRegistry().render("missing", {})


def test_substitution_is_literal():
    registry = PromptRegistry()
    registry.register(_template(template="cost: {{x}}"))
    assert registry.render("greeting", {"x": "$1.50 (.*)"}) == "cost: $1.50 (.*)"


def test_get_latest_or_exact_version():
    registry = PromptRegistry()
    registry.register(_template(version="1.0.0", template="v1 {{x}}"))
    registry.register(_template(version="1.1.0", template="v11 {{x}}"))

    assert registry.get("greeting").version == "1.1.0"
    assert registry.get("greeting", "1.0.0").template == "v1 {{x}}"
    assert registry.get("greeting", "9.9.9") is None
    assert registry.get("nope") is None
    assert registry.render("greeting", {"x": "!"}, version="1.0.0") == "v1 !"


def test_list_and_system_prompt():
    registry = PromptRegistry()
    registry.register(_template(system_prompt="Be brief."))
    registry.register(_template(version="2.0.0"))

    assert len(registry.list()) == 2
    assert registry.get_system_prompt("greeting", "1.0.0") == "Be brief."
    assert registry.get_system_prompt("greeting") is None
    assert registry.get_system_prompt("missing") is None


def test_default_registry_templates_render_with_declared_variables():
    registry = create_default_registry()
    ids = {t.id for t in registry.list()}

    assert ids == {
        "intent_capture",
        "initiative_generation",
        "brief_generation",
        "full_brief_generation",
        "enrichment",
        "feasibility_check",
    }
    for template in DEFAULT_PROMPTS:
        rendered = registry.render(template.id, {name: "value" for name in template.variables})
        assert "{{" not in rendered
        assert registry.get_system_prompt(template.id)
