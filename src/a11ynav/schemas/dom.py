"""Pydantic models for the read-only DOM snapshot the heuristics inspect."""

from __future__ import annotations

from pydantic import BaseModel


class ElementRef(BaseModel):
    html: str = ""  # outerHTML, truncated
    target: str = ""


class RoleElement(ElementRef):
    role: str
    aria_label: str = ""
    aria_labelledby: str = ""


class TextStyle(ElementRef):
    font_size_px: float
    font_weight: str = "400"
    color: str = ""
    background_color: str = ""  # effective background, walking up transparent ancestors


class Heading(ElementRef):
    level: int


class FormControl(ElementRef):
    control_type: str = ""  # input type, or "select"/"textarea"
    has_label: bool = False  # label[for], wrapping label, aria-label or aria-labelledby
    required: bool = False
    aria_required: bool = False


class Form(ElementRef):
    has_submit: bool = False
    has_error_affordance: bool = False  # [aria-invalid], [role=alert], [class*=error]


class Dialog(ElementRef):
    focusable_count: int = 0


class DomSnapshot(BaseModel):
    """Everything the heuristic suite needs, gathered in one page evaluation."""

    role_elements: list[RoleElement] = []
    text_styles: list[TextStyle] = []
    headings: list[Heading] = []
    has_skip_link: bool = False
    controls: list[FormControl] = []
    forms: list[Form] = []
    focus_rules: list[str] = []  # cssText of readable rules whose selector contains :focus
    dialogs: list[Dialog] = []
