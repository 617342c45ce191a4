# implgen/internals/errors.py
from __future__ import annotations
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Optional

from implgen.internals.report import Span, Reporter


class Severity(str, Enum):
    ERROR = "error"
    WARNING = "warning"


class Category(str, Enum):
    BINDING  = "binding"
    OVERRIDE = "override"
    SOURCE   = "source"


@dataclass(frozen=True)
class ErrorMessage:
    code: str
    severity: Severity
    text: str
    category: Category = Category.BINDING
    doc: str = ""


REGISTRY: Dict[str, ErrorMessage] = {}

class _ErrorCatalog:
    def __init__(self, backing: Dict[str, ErrorMessage]) -> None:
        self._registry = backing

    def __getattr__(self, name: str) -> ErrorMessage:
        try:
            return self._registry[name]
        except KeyError as e:
            raise AttributeError(name) from e

    def __getitem__(self, code: str) -> ErrorMessage:
        return self._registry[code]


ERR = _ErrorCatalog(REGISTRY)

def emit(r: Reporter, em: ErrorMessage, span: Optional[Span], **kwargs) -> None:
    text = _fmt(em.code, **kwargs)
    if em.severity == Severity.ERROR:
        r.error(em.code, text, span)
    else:
        r.warn(em.code, text, span)


#
# --- Exceptions
#

class ExpansionError(Exception):
    """A declaration cannot be expanded.

    Carries the catalog entry and the span of the offending text so the host
    can turn it into a diagnostic; the expansion of that declaration stops.
    """
    message: ErrorMessage

    def __init__(self, message: ErrorMessage, span: Optional[Span] = None, **kwargs) -> None:
        self.message = message
        self.span = span
        self.text = _fmt(message.code, **kwargs)
        super().__init__(f"{message.code}: {self.text}")

    @property
    def code(self) -> str:
        return self.message.code

    def relocate(self, origin: Optional[Span]) -> "ExpansionError":
        """Move the span from snippet-relative to file-relative coordinates."""
        if origin is None:
            return self
        if self.span is None:
            self.span = origin
        else:
            self.span = self.span.relative_to(origin)
        return self

    def report(self, r: Reporter) -> None:
        if self.message.severity == Severity.ERROR:
            r.error(self.code, self.text, self.span)
        else:
            r.warn(self.code, self.text, self.span)


class MalformedBinding(ExpansionError):
    """Attribute argument text that is not a valid binding or override."""
    catalog_code = "IG1001"

    def __init__(self, span: Optional[Span] = None, **kwargs) -> None:
        super().__init__(ERR[self.catalog_code], span, **kwargs)


class EmptyArgumentList(MalformedBinding):
    catalog_code = "IG1002"


class InvalidPlaceholderShape(MalformedBinding):
    catalog_code = "IG1003"


class UnresolvedOverrideTarget(ExpansionError):
    catalog_code = "IG1004"

    def __init__(self, span: Optional[Span] = None, **kwargs) -> None:
        super().__init__(ERR[self.catalog_code], span, **kwargs)


class MalformedSource(ExpansionError):
    catalog_code = "IG1005"

    def __init__(self, span: Optional[Span] = None, **kwargs) -> None:
        super().__init__(ERR[self.catalog_code], span, **kwargs)


#
# --- Helpers
#

def _add(msg: ErrorMessage) -> None:
    if msg.code in REGISTRY:
        raise ValueError(f"duplicate error code {REGISTRY[msg.code]} in {msg}")
    REGISTRY[msg.code] = msg

def _get(code: str) -> ErrorMessage:
    try:
        return REGISTRY[code]
    except KeyError:
        raise KeyError(f"unknown error code: {code}")

def _fmt(code: str, **kwargs) -> str:
    msg = _get(code)
    try:
        return msg.text.format(**kwargs)
    except KeyError as key_error:
        missing = key_error.args[0]
        raise KeyError(f"missing text key '{missing}' for {code} "
                       f"(needed by: {msg.text!r})") from None

#
# --- Registry population
#

# Attribute argument errors - IG1xxx range
_add(ErrorMessage("IG1001", Severity.ERROR,
    "malformed binding '{text}': {reason}",
    Category.BINDING,
    "Expected 'T -> A, B', 'T in [A, B]' or 'A, B'."))

_add(ErrorMessage("IG1002", Severity.ERROR,
    "no concrete arguments in '{text}'",
    Category.BINDING,
    "At least one concrete type must follow the placeholder."))

_add(ErrorMessage("IG1003", Severity.ERROR,
    "placeholder '{placeholder}' must be a bare type path",
    Category.BINDING,
    "References, pointers, slices, tuples and other type forms can be bound as arguments but not searched for."))

_add(ErrorMessage("IG1004", Severity.ERROR,
    "override for '{type}' names '{name}', which is not a member of this declaration",
    Category.OVERRIDE,
    "The alternate member of an override marker must be declared in the same body."))

_add(ErrorMessage("IG1005", Severity.ERROR,
    "malformed source: {reason}",
    Category.SOURCE,
    "The declaration could not be split into a token tree."))

# Warnings - IG2xxx range
_add(ErrorMessage("IG2001", Severity.WARNING,
    "'{attribute}' is not followed by an item; nothing was expanded",
    Category.SOURCE))

_add(ErrorMessage("IG2002", Severity.WARNING,
    "override type '{type}' is not an argument of any binding; '{name}' is never used",
    Category.OVERRIDE))
