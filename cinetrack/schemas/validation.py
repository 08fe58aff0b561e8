"""Input validation schemas with XSS protection"""

from pydantic import BaseModel, Field, field_validator
import html
import re
import bleach

DANGEROUS_PATTERNS = [
    r'<script[^>]*>',
    r'javascript:',
    r'on\w+\s*=',
    r'<iframe',
]


class SafeStringMixin:
    """Mixin for XSS-safe string validation"""

    @staticmethod
    def strip_html(value: str) -> str:
        """Drop every tag but keep plain text as typed (bleach escapes "&")"""
        if not value:
            return value
        return html.unescape(bleach.clean(value, tags=[], strip=True))

    @staticmethod
    def validate_no_script(value: str) -> str:
        """Block common XSS patterns"""
        if not value:
            return value

        for pattern in DANGEROUS_PATTERNS:
            if re.search(pattern, value, re.IGNORECASE):
                raise ValueError("Invalid characters detected")

        return value


class SearchQuerySchema(BaseModel, SafeStringMixin):
    """Validated search query"""
    query: str = Field(..., min_length=1, max_length=500)

    @field_validator('query')
    @classmethod
    def clean_query(cls, v):
        v = cls.validate_no_script(v)
        # Unescaping can surface entity-encoded markup, so check again
        return cls.validate_no_script(cls.strip_html(v)).strip()
