"""Unit tests for email template rendering.

Covers variable substitution, escaping, strict undefined handling and the
built-in notification templates.
"""

import pytest
from jinja2 import TemplateSyntaxError, UndefinedError

from authforge.infrastructure.services.email.template_renderer import get_template_renderer
from authforge.infrastructure.services.email.templates import EMAIL_TEMPLATES


@pytest.fixture
def renderer():
    """Fixture to get template renderer instance."""
    return get_template_renderer()


def test_render_simple_variable(renderer) -> None:
    assert renderer.render("Hello {{ name }}!", {"name": "World"}) == "Hello World!"


def test_html_is_escaped(renderer) -> None:
    result = renderer.render("<p>{{ name }}</p>", {"name": "<script>alert(1)</script>"})
    assert "<script>" not in result
    assert "&lt;script&gt;" in result


def test_missing_variable_fails(renderer) -> None:
    with pytest.raises(UndefinedError):
        renderer.render("Hello {{ name }}!", {})


def test_syntax_error(renderer) -> None:
    with pytest.raises(TemplateSyntaxError):
        renderer.render("Hello {{ name ", {"name": "x"})


@pytest.mark.parametrize("template_type", sorted(EMAIL_TEMPLATES))
def test_builtin_templates_render(renderer, template_type) -> None:
    """Every built-in template renders with the variables the service passes."""
    template = EMAIL_TEMPLATES[template_type]
    variables = {
        "app_name": "AuthForge",
        "action_url": "http://localhost:3000/verify-email?token=abc",
        "expires_hours": "1",
    }

    for part in (template.subject, template.text_body, template.html_body):
        assert renderer.render(part, variables)
    if "{{ action_url }}" in template.text_body:
        assert "token=abc" in renderer.render(template.text_body, variables)
