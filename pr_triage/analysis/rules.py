"""Line-scoped rule catalog and the engine that runs it.

Every rule looks at one line, optionally reading a bounded window of
neighbours or the rest of the file to decide, and may derive a literal
replacement for that line. Suggested replacements are best-effort text
rewrites: nothing checks that they still parse.
"""

import re
from dataclasses import dataclass
from typing import Callable, FrozenSet, Iterable, List, Optional, Sequence, Set, Union

from ..models import Issue, Severity, IssueType, Category
from .languages import line_comment_prefix

SCRIPT_LANGUAGES = frozenset({"javascript", "typescript"})

STRING_LITERAL = re.compile(r'"(?:\\.|[^"\\])*"|\'(?:\\.|[^\'\\])*\'|`(?:\\.|[^`\\])*`')
IDENTIFIER = r'[A-Za-z_$][\w$]*'


# ---------------------------------------------------------------------------
# Line context
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class LineContext:
    """One line under evaluation plus read access to the whole file."""
    lines: Sequence[str]
    index: int
    filename: str
    language: str
    line_width: int = 80
    context_window: int = 10

    @property
    def line(self) -> str:
        return self.lines[self.index]

    @property
    def stripped(self) -> str:
        return self.line.strip()

    @property
    def line_number(self) -> int:
        return self.index + 1

    @property
    def indent(self) -> str:
        return self.line[:len(self.line) - len(self.line.lstrip())]

    def window(self, radius: Optional[int] = None) -> Sequence[str]:
        """Lines from ``radius`` before up to ``radius`` after, exclusive."""
        radius = self.context_window if radius is None else radius
        return self.lines[max(0, self.index - radius):min(len(self.lines), self.index + radius)]

    def remainder(self) -> str:
        """Everything after this line."""
        return "\n".join(self.lines[self.index + 1:])

    def before(self) -> Sequence[str]:
        return self.lines[:self.index]

    def previous_code_line(self) -> Optional[str]:
        for j in range(self.index - 1, max(-1, self.index - self.context_window - 1), -1):
            if self.lines[j].strip():
                return self.lines[j]
        return None

    def next_code_line(self) -> Optional[str]:
        for j in range(self.index + 1, min(len(self.lines), self.index + self.context_window + 1)):
            if self.lines[j].strip():
                return self.lines[j]
        return None


HASH_COMMENT_LANGUAGES = frozenset({"python", "ruby"})


def is_comment(stripped: str, hash_comments: bool = False) -> bool:
    """Comment lines; ``#`` only counts where it starts a comment (not JS private fields)."""
    prefixes = ("//", "/*", "*", "#") if hash_comments else ("//", "/*", "*")
    return stripped.startswith(prefixes)


def uses_hash_comments(ctx: "LineContext") -> bool:
    return ctx.language in HASH_COMMENT_LANGUAGES or line_comment_prefix(ctx.filename) == "#"


def mask_strings(line: str) -> str:
    """Blank out string literal contents, keeping quotes and length."""
    return STRING_LITERAL.sub(lambda m: m.group(0)[0] + " " * (len(m.group(0)) - 2) + m.group(0)[-1], line)


def code_part(line: str) -> str:
    """The line with string contents masked and any trailing // comment cut."""
    masked = mask_strings(line)
    cut = masked.find("//")
    return masked if cut < 0 else masked[:cut]


def rewrite_code(line: str, fn: Callable[[str], str]) -> str:
    """Apply ``fn`` to the code between string literals, before any comment."""
    masked = mask_strings(line)
    comment_at = masked.find("//")
    if comment_at < 0:
        comment_at = len(line)

    out = []
    pos = 0
    for m in STRING_LITERAL.finditer(line[:comment_at]):
        out.append(fn(line[pos:m.start()]))
        out.append(m.group(0))
        pos = m.end()
    out.append(fn(line[pos:comment_at]))
    out.append(line[comment_at:])
    return "".join(out)


def enclosing_line(ctx: LineContext, open_ch: str = "{", close_ch: str = "}") -> Optional[str]:
    """Nearest line above, within the window, that opens the block holding this line."""
    balance = 0
    for j in range(ctx.index - 1, max(-1, ctx.index - ctx.context_window - 1), -1):
        text = code_part(ctx.lines[j])
        balance += text.count(close_ch) - text.count(open_ch)
        if balance < 0:
            return ctx.lines[j]
    return None


# ---------------------------------------------------------------------------
# Rule interface
# ---------------------------------------------------------------------------

Message = Union[str, Callable[[LineContext], str]]


@dataclass(frozen=True)
class Rule:
    """
    A single independent check.

    ``predicate`` decides whether the line triggers (it may consult
    neighbouring lines through the context); ``suggest`` derives the
    replacement text for the line, or None when no mechanical rewrite
    exists. ``languages`` of None marks a cross-language rule.
    """
    rule_id: str
    category: str
    severity: str
    issue_type: str
    message: Message
    suggestion: str
    predicate: Callable[[LineContext], object]
    suggest: Optional[Callable[[LineContext], Optional[str]]] = None
    languages: Optional[FrozenSet[str]] = SCRIPT_LANGUAGES
    include_blank: bool = False

    @property
    def cross_language(self) -> bool:
        return self.languages is None

    def applies_to(self, language: str) -> bool:
        return self.languages is None or language in self.languages

    def evaluate(self, ctx: LineContext) -> Optional[Issue]:
        stripped = ctx.stripped
        if not self.include_blank and (not stripped or is_comment(stripped, uses_hash_comments(ctx))):
            return None

        hit = self.predicate(ctx)
        if not hit:
            return None

        suggested = self.suggest(ctx) if self.suggest else None
        message = self.message(ctx) if callable(self.message) else self.message
        column = hit.start() + 1 if isinstance(hit, re.Match) else None

        return Issue(
            file=ctx.filename,
            line=ctx.line_number,
            column=column,
            message=message,
            rule=self.rule_id,
            issue_type=self.issue_type,
            severity=self.severity,
            category=self.category,
            suggestion=self.suggestion,
            fixable=suggested is not None,
            original_code=ctx.line,
            suggested_code=suggested,
        )


# ---------------------------------------------------------------------------
# Debug statements
# ---------------------------------------------------------------------------

DEBUG_CALL = re.compile(r'\bconsole\.(?:log|debug|trace|dir)\s*\(')


def _comment_out(ctx: LineContext) -> str:
    return f"{ctx.indent}// {ctx.stripped}"


# ---------------------------------------------------------------------------
# Declarations
# ---------------------------------------------------------------------------

DECLARATION = re.compile(rf'^(?:const|let|var)\s+({IDENTIFIER})\s*(?::[^=]+)?=(?!=)')
LET_DECLARATION = re.compile(rf'^let\s+({IDENTIFIER})\s*(?::[^=]+)?=(?!=)')
MULTI_DECLARATION = re.compile(rf',\s*{IDENTIFIER}\s*=')
VAR_DECLARATION = re.compile(r'^(?:export\s+)?var\s+')


def _declared_name(ctx: LineContext, pattern: re.Pattern) -> Optional[str]:
    m = pattern.match(ctx.stripped)
    return m.group(1) if m else None


def _mentions(name: str, text: str) -> bool:
    return re.search(rf'(?<![\w$]){re.escape(name)}(?![\w$])', text) is not None


def _is_unused(ctx: LineContext) -> bool:
    name = _declared_name(ctx, DECLARATION)
    if not name or name.startswith("_"):
        return False
    return not _mentions(name, ctx.remainder())


def _prefix_underscore(ctx: LineContext) -> Optional[str]:
    name = _declared_name(ctx, DECLARATION)
    pattern = re.compile(rf'^(\s*(?:const|let|var)\s+){re.escape(name)}(?![\w$])')
    return pattern.sub(lambda m: f"{m.group(1)}_{name}", ctx.line, count=1)


def _reassigned(name: str, text: str) -> bool:
    n = re.escape(name)
    pattern = (
        rf'(?<![\w$.]){n}\s*(?:\*\*|<<|>>>?|\?\?|&&|\|\||[-+*/%&|^])?=(?![=>])'
        rf'|(?<![\w$.]){n}\s*(?:\+\+|--)'
        rf'|(?:\+\+|--)\s*{n}(?![\w$])'
    )
    return re.search(pattern, text) is not None


def _never_reassigned(ctx: LineContext) -> bool:
    name = _declared_name(ctx, LET_DECLARATION)
    if not name or MULTI_DECLARATION.search(ctx.stripped):
        return False
    return not _reassigned(name, ctx.remainder())


def _let_to_const(ctx: LineContext) -> str:
    return re.sub(r'^(\s*)let\s+', r'\1const ', ctx.line, count=1)


def _var_to_let(ctx: LineContext) -> str:
    return re.sub(r'^(\s*(?:export\s+)?)var\s+', r'\1let ', ctx.line, count=1)


# ---------------------------------------------------------------------------
# Statement terminators
# ---------------------------------------------------------------------------

NEEDS_SEMICOLON = [
    re.compile(r'^(?:let|const|var)\s+\S'),
    re.compile(r'^return\s+\S'),
    re.compile(r'^throw\s+\S'),
    re.compile(r'^import\s+\S'),
    re.compile(r'^export\s+\S'),
    re.compile(r'^(?:await\s+)?[\w$.]+\([^()]*\)$'),
    re.compile(r'^[\w$.\[\]]+\s*[-+*/%]?=(?![=>])\s*\S'),
]

NO_SEMICOLON = [
    re.compile(r'^(?:if|for|while|switch|try|catch|finally|function|class|do|else)\b'),
    re.compile(r'^(?:export\s+)?(?:default\s+)?(?:async\s+)?(?:function|class|interface|enum|abstract)\b'),
    re.compile(r'^\}?\s*(?:else|catch|finally)\b'),
    re.compile(r'^[{}\[\]()]+[;,]?$'),
    re.compile(r'^//'),
    re.compile(r'^/\*'),
    re.compile(r'^export\s+default\s+'),
    re.compile(r'^[<@]'),
    re.compile(r'(?:[,{\[(+\-*/=&|?:.<>\\]|=>|\*/)$'),
]


def should_have_semicolon(stripped: str) -> bool:
    if any(p.search(stripped) for p in NO_SEMICOLON):
        return False
    return any(p.search(stripped) for p in NEEDS_SEMICOLON)


def _missing_semicolon(ctx: LineContext) -> bool:
    code = code_part(ctx.line).strip()
    return bool(code) and not code.endswith(";") and should_have_semicolon(code)


def append_to_code(line: str, text: str) -> str:
    """Insert ``text`` right after the code, before any // comment or line ending."""
    pos = len(code_part(line).rstrip())
    return line[:pos] + text + line[pos:]


def _add_semicolon(ctx: LineContext) -> str:
    return append_to_code(ctx.line, ";")


# ---------------------------------------------------------------------------
# Equality
# ---------------------------------------------------------------------------

LOOSE_EQUAL = re.compile(r'(?<![=!<>])==(?!=)')
LOOSE_NOT_EQUAL = re.compile(r'!=(?!=)')


def _loose_equality(ctx: LineContext) -> Optional[re.Match]:
    code = code_part(ctx.line)
    return LOOSE_EQUAL.search(code) or LOOSE_NOT_EQUAL.search(code)


def _widen_equality(ctx: LineContext) -> str:
    def widen(segment: str) -> str:
        return LOOSE_NOT_EQUAL.sub("!==", LOOSE_EQUAL.sub("===", segment))
    return rewrite_code(ctx.line, widen)


# ---------------------------------------------------------------------------
# Async error handling
# ---------------------------------------------------------------------------

AWAIT = re.compile(r'\bawait\s')
ERROR_HANDLING = ("try {", "try{", "catch", ".catch(")


def has_error_handling(ctx: LineContext) -> bool:
    return any(token in line for line in ctx.window() for token in ERROR_HANDLING)


def _unguarded_await(ctx: LineContext) -> bool:
    return AWAIT.search(code_part(ctx.line)) is not None and not has_error_handling(ctx)


def _wrap_in_try(ctx: LineContext) -> str:
    indent = ctx.indent
    return "\n".join([
        f"{indent}try {{",
        f"{indent}  {ctx.stripped}",
        f"{indent}}} catch (error) {{",
        f"{indent}  console.error('Error:', error);",
        f"{indent}}}",
    ])


# ---------------------------------------------------------------------------
# Line length
# ---------------------------------------------------------------------------

BOOLEAN_CONNECTIVE = re.compile(r'\s(?:&&|\|\|)\s')


def _in_string(pos: int, line: str) -> bool:
    return any(m.start() < pos < m.end() for m in STRING_LITERAL.finditer(line))


def break_long_line(line: str, width: int) -> Optional[str]:
    """
    Split an overlong line in two.

    Tries, in order: before the last boolean connective inside the budget,
    after the last argument-list comma inside the budget, then at the last
    whitespace inside the budget. Positions inside string literals are
    never used.
    """
    indent = line[:len(line) - len(line.lstrip())]
    continuation = indent + "  "
    floor = len(indent)

    def split(head: str, tail: str) -> Optional[str]:
        head, tail = head.rstrip(), tail.strip()
        if not head.strip() or not tail:
            return None
        return f"{head}\n{continuation}{tail}"

    connectives = [
        m.start() for m in BOOLEAN_CONNECTIVE.finditer(line)
        if floor < m.start() <= width and not _in_string(m.start(), line)
    ]
    if connectives:
        pos = connectives[-1]
        return split(line[:pos], line[pos:])

    depth = 0
    comma = None
    masked = mask_strings(line)
    for i, ch in enumerate(masked[:width]):
        if ch == "(":
            depth += 1
        elif ch == ")":
            depth -= 1
        elif ch == "," and depth > 0 and i > floor:
            comma = i
    if comma is not None:
        return split(line[:comma + 1], line[comma + 1:])

    for i in range(min(width, len(line) - 1), floor, -1):
        if line[i] == " " and not _in_string(i, line):
            return split(line[:i], line[i:])
    return None


def _too_long(ctx: LineContext) -> bool:
    return len(ctx.line) > ctx.line_width


def _break_line(ctx: LineContext) -> Optional[str]:
    return break_long_line(ctx.line, ctx.line_width)


def _too_long_message(ctx: LineContext) -> str:
    return f"Line too long ({len(ctx.line)} characters, max {ctx.line_width})"


# ---------------------------------------------------------------------------
# Long literals
# ---------------------------------------------------------------------------

QUOTED = re.compile(r'"((?:\\.|[^"\\])*)"|\'((?:\\.|[^\'\\])*)\'')
UPPER_CONSTANT = re.compile(r'^(?:export\s+)?const\s+[A-Z][A-Z0-9_]*\s*=')
MODULE_LINE = re.compile(r'^(?:import|export\s+\*|export\s+\{)|\brequire\s*\(')
MIN_LITERAL_LENGTH = 30
MIN_LITERAL_WORDS = 3
STOPWORDS = frozenset({
    "a", "an", "the", "of", "to", "in", "on", "for", "and", "or", "is",
    "are", "be", "was", "with", "at", "by", "it", "this", "that", "please",
})


def constant_name(text: str) -> str:
    """UPPER_SNAKE name from the significant words of a literal."""
    words = re.findall(r'[A-Za-z][A-Za-z0-9]*', text)
    significant = [w.upper() for w in words if w.lower() not in STOPWORDS and len(w) > 1]
    name = "_".join(significant[:4]) or "MESSAGE"
    return name


def _long_literal(ctx: LineContext) -> Optional[re.Match]:
    stripped = ctx.stripped
    if UPPER_CONSTANT.match(stripped) or MODULE_LINE.search(stripped):
        return None
    for m in QUOTED.finditer(ctx.line):
        text = m.group(1) if m.group(1) is not None else m.group(2)
        if len(text) >= MIN_LITERAL_LENGTH and len(re.findall(r'[A-Za-z]+', text)) >= MIN_LITERAL_WORDS:
            return m
    return None


def _extract_constant(ctx: LineContext) -> str:
    m = _long_literal(ctx)
    literal = m.group(0)
    name = constant_name(literal[1:-1])
    rewritten = ctx.line[:m.start()] + name + ctx.line[m.end():]
    return f"{ctx.indent}const {name} = {literal};\n{rewritten}"


def _long_literal_message(ctx: LineContext) -> str:
    literal = _long_literal(ctx).group(0)
    return f"Long string literal should be a named constant ({constant_name(literal[1:-1])})"


# ---------------------------------------------------------------------------
# Callbacks and documentation
# ---------------------------------------------------------------------------

FUNCTION_CALLBACK = re.compile(r'([(,]\s*)function\s*\(([^)]*)\)\s*\{')


def _function_callback(ctx: LineContext) -> Optional[re.Match]:
    if re.search(r'\bthis\b', ctx.line):
        return None
    return FUNCTION_CALLBACK.search(ctx.line)


def _to_arrow(ctx: LineContext) -> str:
    return FUNCTION_CALLBACK.sub(lambda m: f"{m.group(1)}({m.group(2)}) => {{", ctx.line, count=1)


DOCUMENTABLE = re.compile(
    rf'^(?:export\s+)?(?:default\s+)?(?:async\s+)?function\s*\*?\s*({IDENTIFIER})\s*\('
    rf'|^(?:export\s+)?(?:default\s+)?(?:abstract\s+)?class\s+({IDENTIFIER})'
    rf'|^(?:export\s+)?const\s+({IDENTIFIER})\s*=\s*(?:async\s+)?(?:\([^)]*\)|{IDENTIFIER})\s*=>'
)


def _documentable_name(ctx: LineContext) -> Optional[str]:
    m = DOCUMENTABLE.match(ctx.stripped)
    if not m:
        return None
    return next(g for g in m.groups() if g)


def _undocumented(ctx: LineContext) -> bool:
    if not _documentable_name(ctx):
        return False
    previous = ctx.previous_code_line()
    return previous is None or not previous.strip().endswith("*/")


def _doc_header(ctx: LineContext) -> str:
    name = _documentable_name(ctx)
    indent = ctx.indent
    return f"{indent}/**\n{indent} * Describe {name}.\n{indent} */\n{ctx.line}"


# ---------------------------------------------------------------------------
# Security (cross-language)
# ---------------------------------------------------------------------------

DYNAMIC_EXECUTION = re.compile(
    r'(?<![\w$.])(?:eval|exec)\s*\('
    r'|\bnew\s+Function\s*\('
    r'|\bset(?:Timeout|Interval)\s*\(\s*["\']'
)
RAW_MARKUP_SINK = re.compile(r'\.innerHTML\s*\+?=(?!=)|\bdocument\.write(?:ln)?\s*\(')
INNER_HTML_ASSIGN = re.compile(r'\.innerHTML(\s*\+?=)(?!=)')
SECRET_LITERAL = re.compile(
    r'(?i)\b[\w-]*(?:api[_-]?key|apikey|secret|passwd|password|pwd|token|access[_-]?key|private[_-]?key)'
    r'[\w-]*["\']?\s*[:=]\s*["\']([^"\'\s]{6,})["\']'
)
SECRET_PLACEHOLDER = re.compile(r'(?i)^(?:x+|\*+|changeme|placeholder|your[_-].*|<.*>|\$\{.*\}|example.*|dummy.*)$')
PLAINTEXT_URL = re.compile(
    r'\bhttp://(?!(?:localhost|127\.0\.0\.1|0\.0\.0\.0|\[::1\])(?:[:/"\'`\s]|$))(?!www\.w3\.org)'
)


def _dynamic_execution(ctx: LineContext) -> Optional[re.Match]:
    return DYNAMIC_EXECUTION.search(code_part(ctx.line))


def _raw_markup_sink(ctx: LineContext) -> Optional[re.Match]:
    return RAW_MARKUP_SINK.search(code_part(ctx.line))


def _text_sink(ctx: LineContext) -> Optional[str]:
    if not INNER_HTML_ASSIGN.search(ctx.line):
        return None
    return INNER_HTML_ASSIGN.sub(r'.textContent\1', ctx.line, count=1)


def _secret_literal(ctx: LineContext) -> Optional[re.Match]:
    for m in SECRET_LITERAL.finditer(ctx.line):
        if not SECRET_PLACEHOLDER.match(m.group(1)):
            return m
    return None


def _plaintext_endpoint(ctx: LineContext) -> Optional[re.Match]:
    return PLAINTEXT_URL.search(ctx.line)


def _upgrade_scheme(ctx: LineContext) -> str:
    return PLAINTEXT_URL.sub("https://", ctx.line)


# ---------------------------------------------------------------------------
# Security (script languages)
# ---------------------------------------------------------------------------

SQL_STATEMENT = re.compile(
    r'\b(?:SELECT\b.*\bFROM|INSERT\s+INTO|UPDATE\b.*\bSET|DELETE\s+FROM)\b', re.IGNORECASE
)
CONCATENATION = re.compile(r'["\'`]\s*\+|\+\s*["\'`]')
INSECURE_RANDOM = re.compile(r'\bMath\.random\s*\(\s*\)')
SECRET_LIKE_NAME = re.compile(r'(?i)token|secret|password|passwd|nonce|salt|session|key|otp|csrf|auth')


def _injected_query(ctx: LineContext) -> bool:
    strings = [m.group(0) for m in STRING_LITERAL.finditer(ctx.line)]
    if not any(SQL_STATEMENT.search(s) for s in strings):
        return False
    templated = any(s.startswith("`") and "${" in s and SQL_STATEMENT.search(s) for s in strings)
    return templated or CONCATENATION.search(ctx.line) is not None


def _insecure_random(ctx: LineContext) -> bool:
    if not INSECURE_RANDOM.search(ctx.line):
        return False
    return SECRET_LIKE_NAME.search(INSECURE_RANDOM.sub("", code_part(ctx.line))) is not None


# ---------------------------------------------------------------------------
# Performance
# ---------------------------------------------------------------------------

ELEMENT_LOOKUP = re.compile(
    r'\bdocument\.(?:getElementById|querySelector(?:All)?|getElementsBy(?:ClassName|TagName|Name))'
    r'\s*\(\s*[^()]*?\s*\)'
)
LENGTH_LOOP = re.compile(
    rf'for\s*\(\s*(let|var)\s+({IDENTIFIER})\s*=\s*([^;,]+?)\s*;\s*\2\s*(<=?)\s*([\w$.\[\]]+)\.length\s*;'
)
LOOP_OPENER = re.compile(r'\b(?:for|while)\s*\(|\bdo\s*\{|\.(?:forEach|map|flatMap|filter|reduce)\s*\(')
ALLOCATION = re.compile(
    r'\bnew\s+(?:Array|Object|Map|Set|WeakMap|WeakSet|RegExp|Date)\s*\('
    r'|(?:=|\breturn|\()\s*(?:\{\s*\}|\[\s*\])'
)


def _normalized(call: str) -> str:
    return re.sub(r'\s+', '', call)


def _repeated_lookup(ctx: LineContext) -> Optional[re.Match]:
    for m in ELEMENT_LOOKUP.finditer(ctx.line):
        call = _normalized(m.group(0))
        if any(call in _normalized(line) for line in ctx.before()):
            return m
    return None


def _repeated_lookup_message(ctx: LineContext) -> str:
    return f"Repeated element lookup {_normalized(_repeated_lookup(ctx).group(0))}; cache the result"


def _hoist_length(ctx: LineContext) -> str:
    def hoist(m: re.Match) -> str:
        keyword, name, start, op, collection = m.groups()
        size = "len" if not re.search(r'\blen\b', ctx.line) else f"{name}Len"
        return f"for ({keyword} {name} = {start}, {size} = {collection}.length; {name} {op} {size};"
    return LENGTH_LOOP.sub(hoist, ctx.line, count=1)


def inside_loop(ctx: LineContext) -> bool:
    """Whether the line sits in a loop body opened within the context window."""
    code = code_part(ctx.line)
    m = ALLOCATION.search(code)
    if m:
        head = code[:m.start()]
        if LOOP_OPENER.search(head) and "{" in head:
            return True

    balance = 0
    for j in range(ctx.index - 1, max(-1, ctx.index - ctx.context_window - 1), -1):
        text = code_part(ctx.lines[j])
        balance += text.count("}") - text.count("{")
        if balance < 0:
            if LOOP_OPENER.search(text):
                return True
            balance = 0
    return False


def _allocation_in_loop(ctx: LineContext) -> bool:
    return ALLOCATION.search(code_part(ctx.line)) is not None and inside_loop(ctx)


# ---------------------------------------------------------------------------
# Style and format
# ---------------------------------------------------------------------------

CONCAT_TEMPLATE = re.compile(
    r'(["\'])((?:(?!\1)[^\\]|\\.)*)\1\s*\+\s*([A-Za-z_$][\w$.]*)\s*\+\s*(["\'])((?:(?!\4)[^\\]|\\.)*)\4'
)


def _template_escape(text: str) -> str:
    return text.replace("`", "\\`").replace("${", "\\${")


def _to_template(ctx: LineContext) -> str:
    return CONCAT_TEMPLATE.sub(
        lambda m: f"`{_template_escape(m.group(2))}${{{m.group(3)}}}{_template_escape(m.group(5))}`",
        ctx.line,
    )


DOUBLE_QUOTED = re.compile(r'"((?:\\.|[^"\\\'])*)"')


def _single_quote(segment: str) -> str:
    if segment.startswith('"') and DOUBLE_QUOTED.fullmatch(segment):
        return "'" + segment[1:-1].replace('\\"', '"') + "'"
    return segment


def _requote(line: str) -> str:
    out = []
    pos = 0
    for m in STRING_LITERAL.finditer(line):
        out.append(line[pos:m.start()])
        out.append(_single_quote(m.group(0)))
        pos = m.end()
    out.append(line[pos:])
    return "".join(out)


def _mixed_quotes(ctx: LineContext) -> bool:
    line = ctx.line
    if "`" in line:
        return False
    literals = [m.group(0) for m in STRING_LITERAL.finditer(line)]
    has_single = any(s.startswith("'") for s in literals)
    has_convertible = any(s.startswith('"') and DOUBLE_QUOTED.fullmatch(s) for s in literals)
    return has_single and has_convertible


def _fix_quotes(ctx: LineContext) -> str:
    return _requote(ctx.line)


OBJECT_OPENER = re.compile(r'(?:[=(,:?]|\breturn)\s*\{$')
PROPERTY = re.compile(
    rf'^(?:{IDENTIFIER}|"[^"]*"|\'[^\']*\'|\[[^\]]+\])\s*:\s*\S|^\.\.\.[\w$]|^{IDENTIFIER}$'
)


def _missing_trailing_comma(ctx: LineContext) -> bool:
    stripped = code_part(ctx.line).strip()
    if stripped.endswith((",", "{", "[", "(", ";", "=>", ":")) or stripped.startswith(("}", "]", ")")):
        return False
    following = ctx.next_code_line()
    if following is None or not following.strip().startswith(("}", "]")):
        return False

    if following.strip().startswith("]"):
        opener = enclosing_line(ctx, "[", "]")
        return opener is not None and code_part(opener).rstrip().endswith("[")

    opener = enclosing_line(ctx, "{", "}")
    if opener is None:
        return False
    return bool(OBJECT_OPENER.search(code_part(opener).rstrip())) and bool(PROPERTY.match(stripped))


def _add_trailing_comma(ctx: LineContext) -> str:
    return append_to_code(ctx.line, ",")


TIGHT_OPERATOR = re.compile(r'(?<=[\w)\]])(?<!\d[eE])([=+\-*/%])(?=[\w(\[])')
MARKUP = re.compile(r'</?[A-Za-z][\w.-]*(?:\s|>|/>)')
REGEX_LITERAL = re.compile(r'(?:^|[(=,:!&|?])\s*/[^/*\s]')


def _space_operators(line: str) -> str:
    return rewrite_code(line, lambda segment: TIGHT_OPERATOR.sub(r' \1 ', segment))


def _missing_operator_spacing(ctx: LineContext) -> bool:
    code = code_part(ctx.line)
    if MARKUP.search(code) or REGEX_LITERAL.search(code):
        return False
    return _space_operators(ctx.line) != ctx.line


def _spaced(ctx: LineContext) -> str:
    return _space_operators(ctx.line)


def _consecutive_blank(ctx: LineContext) -> bool:
    return not ctx.stripped and ctx.index > 0 and not ctx.lines[ctx.index - 1].strip()


# ---------------------------------------------------------------------------
# Catalog
# ---------------------------------------------------------------------------

HIGH = Severity.HIGH.value
MEDIUM = Severity.MEDIUM.value
LOW = Severity.LOW.value

DEFAULT_RULES: List[Rule] = [
    # Cross-language
    Rule(
        rule_id="no-eval",
        category=Category.SECURITY.value,
        severity=HIGH,
        issue_type=IssueType.ERROR.value,
        message="Use of dynamic code execution is dangerous and should be avoided",
        suggestion="Replace eval-style execution with JSON parsing or explicit function calls",
        predicate=_dynamic_execution,
        languages=None,
    ),
    Rule(
        rule_id="no-inner-html",
        category=Category.SECURITY.value,
        severity=HIGH,
        issue_type=IssueType.ERROR.value,
        message="Potential XSS vulnerability: raw markup written to the DOM",
        suggestion="Use textContent or sanitize HTML content before inserting it",
        predicate=_raw_markup_sink,
        suggest=_text_sink,
        languages=None,
    ),
    Rule(
        rule_id="no-hardcoded-secrets",
        category=Category.SECURITY.value,
        severity=HIGH,
        issue_type=IssueType.ERROR.value,
        message="Possible hardcoded secret in source",
        suggestion="Load secrets from environment variables or a secret manager",
        predicate=_secret_literal,
        languages=None,
    ),
    Rule(
        rule_id="no-plaintext-http",
        category=Category.SECURITY.value,
        severity=MEDIUM,
        issue_type=IssueType.WARNING.value,
        message="Plaintext HTTP endpoint; use HTTPS",
        suggestion="Switch the URL scheme to https://",
        predicate=_plaintext_endpoint,
        suggest=_upgrade_scheme,
        languages=None,
    ),
    # Script languages: best practice
    Rule(
        rule_id="no-console",
        category=Category.BEST_PRACTICE.value,
        severity=MEDIUM,
        issue_type=IssueType.WARNING.value,
        message="Console statement should be removed for production",
        suggestion="Remove console statements or use a proper logging library",
        predicate=lambda ctx: DEBUG_CALL.search(code_part(ctx.line)),
        suggest=_comment_out,
    ),
    Rule(
        rule_id="eqeqeq",
        category=Category.BEST_PRACTICE.value,
        severity=HIGH,
        issue_type=IssueType.WARNING.value,
        message="Use strict equality (===) instead of loose equality (==)",
        suggestion="Use === and !== for equality checks",
        predicate=_loose_equality,
        suggest=_widen_equality,
    ),
    Rule(
        rule_id="require-await-error-handling",
        category=Category.BEST_PRACTICE.value,
        severity=HIGH,
        issue_type=IssueType.WARNING.value,
        message="Async operation without error handling",
        suggestion="Wrap await calls in try/catch blocks",
        predicate=_unguarded_await,
        suggest=_wrap_in_try,
    ),
    Rule(
        rule_id="no-magic-strings",
        category=Category.BEST_PRACTICE.value,
        severity=LOW,
        issue_type=IssueType.INFO.value,
        message=_long_literal_message,
        suggestion="Extract long string literals into named constants",
        predicate=_long_literal,
        suggest=_extract_constant,
    ),
    Rule(
        rule_id="require-jsdoc",
        category=Category.BEST_PRACTICE.value,
        severity=LOW,
        issue_type=IssueType.INFO.value,
        message=lambda ctx: f"Missing documentation comment for '{_documentable_name(ctx)}'",
        suggestion="Add a /** ... */ block describing the declaration",
        predicate=_undocumented,
        suggest=_doc_header,
    ),
    # Script languages: security
    Rule(
        rule_id="no-sql-injection",
        category=Category.SECURITY.value,
        severity=HIGH,
        issue_type=IssueType.ERROR.value,
        message="SQL query built from concatenated input",
        suggestion="Use parameterized queries instead of string building",
        predicate=_injected_query,
    ),
    Rule(
        rule_id="no-insecure-random",
        category=Category.SECURITY.value,
        severity=HIGH,
        issue_type=IssueType.WARNING.value,
        message="Math.random() is not suitable for security-sensitive values",
        suggestion="Use crypto.getRandomValues() or crypto.randomUUID()",
        predicate=_insecure_random,
    ),
    # Script languages: performance
    Rule(
        rule_id="no-repeated-lookup",
        category=Category.PERFORMANCE.value,
        severity=MEDIUM,
        issue_type=IssueType.WARNING.value,
        message=_repeated_lookup_message,
        suggestion="Store the element in a variable and reuse it",
        predicate=_repeated_lookup,
    ),
    Rule(
        rule_id="no-length-in-loop-condition",
        category=Category.PERFORMANCE.value,
        severity=MEDIUM,
        issue_type=IssueType.WARNING.value,
        message="Loop re-reads the collection length on every iteration",
        suggestion="Cache the length before the loop",
        predicate=lambda ctx: LENGTH_LOOP.search(ctx.line),
        suggest=_hoist_length,
    ),
    Rule(
        rule_id="no-allocation-in-loop",
        category=Category.PERFORMANCE.value,
        severity=HIGH,
        issue_type=IssueType.WARNING.value,
        message="Object allocation inside a loop body",
        suggestion="Hoist the allocation out of the loop or reuse one instance",
        predicate=_allocation_in_loop,
    ),
    # Script languages: lint
    Rule(
        rule_id="semi",
        category=Category.LINT.value,
        severity=HIGH,
        issue_type=IssueType.ERROR.value,
        message="Missing semicolon",
        suggestion="Add semicolon at end of statement",
        predicate=_missing_semicolon,
        suggest=_add_semicolon,
    ),
    Rule(
        rule_id="no-var",
        category=Category.LINT.value,
        severity=HIGH,
        issue_type=IssueType.ERROR.value,
        message="Unexpected var, use let or const instead",
        suggestion="Use let or const instead of var for block scoping",
        predicate=lambda ctx: VAR_DECLARATION.match(ctx.stripped),
        suggest=_var_to_let,
    ),
    Rule(
        rule_id="prefer-const",
        category=Category.LINT.value,
        severity=MEDIUM,
        issue_type=IssueType.WARNING.value,
        message=lambda ctx: f"'{_declared_name(ctx, LET_DECLARATION)}' is never reassigned. Use 'const' instead",
        suggestion="Use const for variables that are never reassigned",
        predicate=_never_reassigned,
        suggest=_let_to_const,
    ),
    Rule(
        rule_id="no-unused-vars",
        category=Category.LINT.value,
        severity=MEDIUM,
        issue_type=IssueType.WARNING.value,
        message=lambda ctx: f"'{_declared_name(ctx, DECLARATION)}' is assigned a value but never used",
        suggestion="Remove the variable or prefix it with an underscore",
        predicate=_is_unused,
        suggest=_prefix_underscore,
    ),
    Rule(
        rule_id="prefer-arrow-callback",
        category=Category.LINT.value,
        severity=MEDIUM,
        issue_type=IssueType.WARNING.value,
        message="Prefer arrow functions for callbacks",
        suggestion="Use arrow functions for callbacks",
        predicate=_function_callback,
        suggest=_to_arrow,
    ),
    Rule(
        rule_id="prefer-template",
        category=Category.LINT.value,
        severity=MEDIUM,
        issue_type=IssueType.WARNING.value,
        message="Prefer template literals over string concatenation",
        suggestion="Use template literals for string interpolation",
        predicate=lambda ctx: CONCAT_TEMPLATE.search(ctx.line),
        suggest=_to_template,
    ),
    # Script languages: format
    Rule(
        rule_id="quotes",
        category=Category.FORMAT.value,
        severity=MEDIUM,
        issue_type=IssueType.WARNING.value,
        message="Inconsistent quote style - prefer single quotes",
        suggestion="Use single quotes consistently",
        predicate=_mixed_quotes,
        suggest=_fix_quotes,
    ),
    Rule(
        rule_id="comma-dangle",
        category=Category.FORMAT.value,
        severity=MEDIUM,
        issue_type=IssueType.WARNING.value,
        message="Missing trailing comma",
        suggestion="Add trailing comma for cleaner diffs",
        predicate=_missing_trailing_comma,
        suggest=_add_trailing_comma,
    ),
    Rule(
        rule_id="space-infix-ops",
        category=Category.FORMAT.value,
        severity=MEDIUM,
        issue_type=IssueType.WARNING.value,
        message="Missing spaces around operators",
        suggestion="Add spaces around operators for readability",
        predicate=_missing_operator_spacing,
        suggest=_spaced,
    ),
    Rule(
        rule_id="max-len",
        category=Category.FORMAT.value,
        severity=LOW,
        issue_type=IssueType.WARNING.value,
        message=_too_long_message,
        suggestion="Break long lines for readability",
        predicate=_too_long,
        suggest=_break_line,
    ),
    Rule(
        rule_id="no-multiple-empty-lines",
        category=Category.FORMAT.value,
        severity=LOW,
        issue_type=IssueType.WARNING.value,
        message="Multiple empty lines not allowed",
        suggestion="Remove extra empty lines",
        predicate=_consecutive_blank,
        suggest=lambda ctx: "",
        include_blank=True,
    ),
]


class RuleEngine:
    """Runs a rule catalog over a file's lines."""

    def __init__(
        self,
        rules: Optional[Iterable[Rule]] = None,
        line_width: int = 80,
        context_window: int = 10,
    ):
        self.rules = list(DEFAULT_RULES if rules is None else rules)
        self.line_width = line_width
        self.context_window = context_window

    def rules_for(self, language: str) -> List[Rule]:
        """Rules that apply to a language; unknown languages get cross-language rules only."""
        return [rule for rule in self.rules if rule.applies_to(language)]

    def analyze(
        self,
        content: str,
        filename: str,
        language: str,
        line_filter: Optional[Set[int]] = None,
    ) -> List[Issue]:
        """
        Evaluate every applicable rule on every eligible line.

        Args:
            content: File text
            filename: Path reported on each finding
            language: Language name (see ``languages.language_for``)
            line_filter: 1-based lines allowed to emit; rules still read
                the whole file for context

        Returns:
            Findings in line order, rule-catalog order within a line
        """
        lines = content.split("\n")
        rules = self.rules_for(language)
        issues: List[Issue] = []

        for index in range(len(lines)):
            if line_filter is not None and index + 1 not in line_filter:
                continue
            ctx = LineContext(
                lines=lines,
                index=index,
                filename=filename,
                language=language,
                line_width=self.line_width,
                context_window=self.context_window,
            )
            for rule in rules:
                issue = rule.evaluate(ctx)
                if issue is not None:
                    issues.append(issue)

        return issues
