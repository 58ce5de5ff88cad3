"""SQL statement governance using a lexical allow/deny filter.

Statements are normalized (comments stripped, whitespace collapsed,
uppercased) and then checked for:
- an allowed leading verb
- forbidden verbs anywhere in the text, as whole words
- more than one statement

This is not a parser. Keywords are matched after uppercasing the whole text,
string literals included, so a literal like ``'please drop by'`` is denied
as if it contained DROP. That false positive is an accepted limitation of a
lexical filter.
"""
import re
import logging
from dataclasses import dataclass
from typing import Optional

logger = logging.getLogger(__name__)


READ_VERBS: tuple[str, ...] = ("SELECT", "SHOW", "DESCRIBE", "DESC", "EXPLAIN")

# Always denied, wherever they appear.
FORBIDDEN_VERBS: tuple[str, ...] = (
    "DROP",
    "CREATE",
    "ALTER",
    "TRUNCATE",
    "RENAME",
    "REPLACE",
    "GRANT",
    "REVOKE",
    "LOCK",
    "UNLOCK",
    "CALL",
    "EXEC",
    "EXECUTE",
    "SET",
    "START",
    "BEGIN",
    "COMMIT",
    "ROLLBACK",
)

# Keywords that are clauses, not statements, after these leading verbs.
CLAUSE_VERBS: dict[str, tuple[str, ...]] = {
    "UPDATE": ("SET",),
    "INSERT": ("SET",),
}

DENY_EMPTY = "statement must be a non-empty string"
DENY_STATEMENT_TYPE = "statement type not permitted"
DENY_DISALLOWED_COMMAND = "statement contains a disallowed command"
DENY_MULTIPLE_STATEMENTS = "multiple statements not permitted"

_LINE_COMMENT = re.compile(r"--.*$", re.MULTILINE)
_BLOCK_COMMENT = re.compile(r"/\*.*?\*/", re.DOTALL)
_WHITESPACE = re.compile(r"\s+")


@dataclass(frozen=True)
class SQLPermissions:
    """Write permissions layered on top of the read-only verbs."""

    allow_insert: bool = False
    allow_update: bool = False
    allow_delete: bool = False

    def write_verbs(self) -> dict[str, bool]:
        return {
            "INSERT": self.allow_insert,
            "UPDATE": self.allow_update,
            "DELETE": self.allow_delete,
        }

    @property
    def allowed_verbs(self) -> tuple[str, ...]:
        granted = tuple(verb for verb, ok in self.write_verbs().items() if ok)
        return READ_VERBS + granted

    @property
    def forbidden_verbs(self) -> tuple[str, ...]:
        denied = tuple(verb for verb, ok in self.write_verbs().items() if not ok)
        return FORBIDDEN_VERBS + denied


READ_ONLY = SQLPermissions()


@dataclass(frozen=True)
class PolicyDecision:
    """Result of evaluating a statement against the policy."""

    allowed: bool
    reason: Optional[str] = None
    verb: Optional[str] = None


def normalize_statement(sql: str) -> str:
    """Strip comments, collapse whitespace, trim and uppercase."""
    text = _LINE_COMMENT.sub("", sql)
    text = _BLOCK_COMMENT.sub("", text)
    text = _WHITESPACE.sub(" ", text)
    return text.strip().upper()


def leading_verb(normalized: str, verbs: tuple[str, ...]) -> Optional[str]:
    """Return the verb of ``verbs`` the normalized statement starts with."""
    for verb in verbs:
        if normalized == verb or normalized.startswith(verb + " "):
            return verb
    return None


def _find_forbidden(normalized: str, verbs: tuple[str, ...]) -> Optional[str]:
    for verb in verbs:
        if re.search(rf"\b{verb}\b", normalized):
            return verb
    return None


def evaluate(sql, permissions: SQLPermissions = READ_ONLY) -> PolicyDecision:
    """Decide whether ``sql`` may run under ``permissions``. No I/O."""
    if not isinstance(sql, str) or not sql.strip():
        return PolicyDecision(allowed=False, reason=DENY_EMPTY)

    normalized = normalize_statement(sql)

    verb = leading_verb(normalized, permissions.allowed_verbs)
    if verb is None:
        return PolicyDecision(allowed=False, reason=DENY_STATEMENT_TYPE)

    clauses = CLAUSE_VERBS.get(verb, ())
    forbidden = _find_forbidden(
        normalized, tuple(v for v in permissions.forbidden_verbs if v not in clauses)
    )
    if forbidden:
        logger.debug(f"Forbidden verb {forbidden} found after leading {verb}")
        return PolicyDecision(allowed=False, reason=DENY_DISALLOWED_COMMAND, verb=verb)

    if ";" in normalized[:-1]:
        return PolicyDecision(allowed=False, reason=DENY_MULTIPLE_STATEMENTS, verb=verb)

    return PolicyDecision(allowed=True, verb=verb)
