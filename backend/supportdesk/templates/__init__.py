"""
Templates Package

Canned auto-responses and HTML email templates.
"""
from .email_templates import (
    get_email_template,
    get_base_template,
    get_info_card,
    EmailTemplateKey,
    TEMPLATE_REGISTRY
)
from .response_templates import (
    RESPONSE_TEMPLATES,
    ResponseTemplateKey,
    get_response_template,
    generate_ai_response,
    truncate_response
)

__all__ = [
    "get_email_template",
    "get_base_template",
    "get_info_card",
    "EmailTemplateKey",
    "TEMPLATE_REGISTRY",
    "RESPONSE_TEMPLATES",
    "ResponseTemplateKey",
    "get_response_template",
    "generate_ai_response",
    "truncate_response",
]
