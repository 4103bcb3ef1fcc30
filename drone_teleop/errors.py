from dataclasses import dataclass
from typing import Any, List, Optional, Tuple

from pydantic import ValidationError


# Tipos de error de pydantic agrupados por clase de fallo
_RANGE_TYPES = {"greater_than", "greater_than_equal", "less_than", "less_than_equal"}
_SYNTAX_TYPES = {"json_invalid", "json_type"}


def _kind_for(err_type: str) -> str:
    if err_type == "missing":
        return "missing"
    if err_type == "enum":
        return "enum"
    if err_type in _RANGE_TYPES:
        return "range"
    if err_type in _SYNTAX_TYPES:
        return "syntax"
    if err_type.endswith("_type") or err_type.endswith("_parsing"):
        return "type"
    return "invalid"


@dataclass(frozen=True)
class SchemaIssue:
    kind: str
    path: Tuple[str, ...]
    message: str
    expected: Optional[str] = None
    actual: Any = None

    @property
    def location(self) -> str:
        return ".".join(self.path) or "<root>"

    def to_dict(self) -> dict:
        return {
            "kind": self.kind,
            "path": list(self.path),
            "message": self.message,
            "expected": self.expected,
            "actual": self.actual,
        }


class SchemaError(ValueError):
    """
    El documento no tiene la forma de un Config.

    Lleva la lista completa de problemas; ``kind`` y ``path`` son los del
    primero, que suele bastar para mostrar al usuario o al log.
    """

    def __init__(self, issues: List[SchemaIssue]):
        if not issues:
            raise ValueError("SchemaError requires at least one issue")
        self.issues = list(issues)
        first = self.issues[0]
        extra = f" (+{len(self.issues) - 1} more)" if len(self.issues) > 1 else ""
        super().__init__(f"{first.kind} at {first.location}: {first.message}{extra}")

    @property
    def kind(self) -> str:
        return self.issues[0].kind

    @property
    def path(self) -> Tuple[str, ...]:
        return self.issues[0].path

    def to_dict(self) -> dict:
        return {"error": "schema", "issues": [i.to_dict() for i in self.issues]}

    @classmethod
    def from_validation_error(cls, exc: ValidationError) -> "SchemaError":
        issues = []
        for err in exc.errors(include_url=False):
            kind = _kind_for(err["type"])
            ctx = err.get("ctx") or {}
            expected = ctx.get("expected")
            if expected is None and kind == "range":
                expected = ", ".join(f"{k} {v}" for k, v in ctx.items() if k in ("ge", "le", "gt", "lt"))
            issues.append(SchemaIssue(
                kind=kind,
                path=tuple(str(p) for p in err["loc"]),
                message=err["msg"],
                expected=expected,
                # en "missing" el input es el objeto padre, no el campo
                actual=None if kind == "missing" else err.get("input"),
            ))
        return cls(issues)

    @classmethod
    def syntax(cls, message: str) -> "SchemaError":
        return cls([SchemaIssue(kind="syntax", path=(), message=message)])


class ConfigStoreError(RuntimeError):
    """Fallo de E/S leyendo o escribiendo el fichero de configuración."""

    def __init__(self, path, cause: Exception):
        self.path = path
        self.cause = cause
        super().__init__(f"config store error at {path}: {cause}")
