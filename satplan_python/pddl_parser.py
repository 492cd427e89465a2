"""
pddl_parser.py - Recursive descent parser for STRIPS PDDL domain / problem files.

Covers :strips, :typing, :negative-preconditions and :equality. Conjunctive
preconditions, effects and goals only; disjunctions, quantifiers and
conditional effects are rejected with a ParseError. Numeric effects such as
``(increase (total-cost) 1)`` and function assignments in :init are skipped.
"""

from __future__ import annotations
import re
from dataclasses import dataclass, field
from typing import Optional


# ── Tokeniser ─────────────────────────────────────────────────────────────────

TOK_LPAREN = '('
TOK_RPAREN = ')'
TOK_DASH   = '-'
TOK_KEYWORD = 'KEYWORD'
TOK_ID     = 'ID'
TOK_VAR    = 'VAR'
TOK_EOF    = 'EOF'

_TOKEN_RE = re.compile(r"""
      (?P<ws>[ \t\r\n]+)
    | (?P<comment>;[^\n]*)
    | (?P<lparen>\()
    | (?P<rparen>\))
    | (?P<dash>-(?=[\s()]))
    | (?P<keyword>:[a-zA-Z][a-zA-Z0-9_\-]*)
    | (?P<var>\?[a-zA-Z0-9_\-]+)
    | (?P<id>[.a-zA-Z0-9_=<>\-]+)
""", re.VERBOSE)

NUMERIC_HEADS = frozenset({'increase', 'decrease', 'assign', 'scale-up', 'scale-down'})
UNSUPPORTED_HEADS = frozenset({'or', 'imply', 'forall', 'exists', 'when'})


class ParseError(Exception):
    pass


@dataclass
class Token:
    kind: str
    value: str
    line: int = 0


def tokenize(text: str) -> list[Token]:
    """Tokenise PDDL text (case-insensitive identifiers, ; comments)."""
    tokens: list[Token] = []
    line = 1
    pos = 0
    while pos < len(text):
        m = _TOKEN_RE.match(text, pos)
        if m is None:
            raise ParseError(f"line {line}: unexpected character {text[pos]!r}")
        kind = m.lastgroup
        value = m.group(0)
        if kind == 'lparen':
            tokens.append(Token(TOK_LPAREN, value, line))
        elif kind == 'rparen':
            tokens.append(Token(TOK_RPAREN, value, line))
        elif kind == 'dash':
            tokens.append(Token(TOK_DASH, value, line))
        elif kind == 'keyword':
            tokens.append(Token(TOK_KEYWORD, value[1:].lower(), line))
        elif kind == 'var':
            tokens.append(Token(TOK_VAR, value.lower(), line))
        elif kind == 'id':
            tokens.append(Token(TOK_ID, value.lower(), line))
        line += value.count('\n')
        pos = m.end()
    tokens.append(Token(TOK_EOF, '', line))
    return tokens


# ── Parsed structures ────────────────────────────────────────────────────────

@dataclass(frozen=True)
class Literal:
    """``(pred a1 a2)`` or its negation; ``(= a b)`` has predicate ``=``."""
    positive: bool
    predicate: str
    args: tuple = ()

    @property
    def is_equality(self) -> bool:
        return self.predicate == '='


@dataclass
class ActionSchema:
    name: str
    params: list[tuple[str, str]] = field(default_factory=list)   # (?var, type)
    preconds: list[Literal] = field(default_factory=list)
    effects: list[Literal] = field(default_factory=list)


@dataclass
class Domain:
    name: str
    requirements: list[str] = field(default_factory=list)
    types: dict[str, str] = field(default_factory=dict)         # type -> parent
    constants: dict[str, str] = field(default_factory=dict)     # object -> type
    predicates: dict[str, int] = field(default_factory=dict)    # name -> arity
    actions: list[ActionSchema] = field(default_factory=list)


@dataclass
class Problem:
    name: str
    domain: str = ''
    objects: dict[str, str] = field(default_factory=dict)       # object -> type
    init: list[tuple] = field(default_factory=list)             # ground atoms
    goal: list[Literal] = field(default_factory=list)


# ── Parser ────────────────────────────────────────────────────────────────────

class PDDLParser:
    """Recursive-descent parser for PDDL domain / problem files."""

    def __init__(self, tokens: list[Token]):
        self.tokens = tokens
        self.pos = 0

    # -- helpers -------------------------------------------------------------

    def _cur(self) -> Token:
        return self.tokens[self.pos]

    def _advance(self) -> Token:
        t = self.tokens[self.pos]
        if t.kind != TOK_EOF:
            self.pos += 1
        return t

    def _match(self, kind: str, value: Optional[str] = None) -> bool:
        t = self._cur()
        return t.kind == kind and (value is None or t.value == value)

    def _expect(self, kind: str, value: Optional[str] = None) -> Token:
        t = self._advance()
        if t.kind != kind or (value is not None and t.value != value):
            want = f"'{value}'" if value is not None else kind
            raise ParseError(f"line {t.line}: expected {want}, got '{t.value or t.kind}'")
        return t

    def _read_name(self) -> str:
        t = self._advance()
        if t.kind in (TOK_ID, TOK_VAR):
            return t.value
        raise ParseError(f"line {t.line}: expected identifier, got '{t.value or t.kind}'")

    def _skip_balanced(self):
        """Skip tokens until the ')' matching an already consumed '('."""
        depth = 1
        while depth > 0:
            t = self._advance()
            if t.kind == TOK_LPAREN:
                depth += 1
            elif t.kind == TOK_RPAREN:
                depth -= 1
            elif t.kind == TOK_EOF:
                raise ParseError("unexpected end of file")

    # -- top level -----------------------------------------------------------

    def parse(self):
        """Parse a complete file and return a :class:`Domain` or :class:`Problem`."""
        self._expect(TOK_LPAREN)
        self._expect(TOK_ID, 'define')
        self._expect(TOK_LPAREN)
        kind = self._read_name()
        name = self._read_name()
        self._expect(TOK_RPAREN)
        if kind == 'domain':
            result = self._parse_domain(Domain(name))
        elif kind == 'problem':
            result = self._parse_problem(Problem(name))
        else:
            raise ParseError(f"unknown PDDL definition '{kind}'")
        self._expect(TOK_RPAREN)
        return result

    # -- domain --------------------------------------------------------------

    def _parse_domain(self, domain: Domain) -> Domain:
        while self._match(TOK_LPAREN):
            self._advance()
            section = self._expect(TOK_KEYWORD).value
            if section == 'requirements':
                while self._match(TOK_KEYWORD):
                    domain.requirements.append(self._advance().value)
            elif section == 'types':
                for name, parent in self._parse_typed_list():
                    domain.types[name] = parent
            elif section == 'constants':
                domain.constants.update(self._parse_typed_list())
            elif section == 'predicates':
                while self._match(TOK_LPAREN):
                    self._advance()
                    pred = self._read_name()
                    domain.predicates[pred] = len(self._parse_typed_list())
                    self._expect(TOK_RPAREN)
            elif section == 'action':
                domain.actions.append(self._parse_action())
            else:
                # :functions, :constraints, ...
                self._skip_balanced()
                continue
            self._expect(TOK_RPAREN)
        return domain

    def _parse_action(self) -> ActionSchema:
        action = ActionSchema(self._read_name())
        while self._match(TOK_KEYWORD):
            key = self._advance().value
            if key == 'parameters':
                self._expect(TOK_LPAREN)
                action.params = self._parse_typed_list()
                self._expect(TOK_RPAREN)
            elif key == 'precondition':
                action.preconds = self._parse_formula()
            elif key == 'effect':
                action.effects = self._parse_formula()
            else:
                raise ParseError(f"line {self._cur().line}: unknown action field ':{key}'")
        return action

    # -- problem -------------------------------------------------------------

    def _parse_problem(self, problem: Problem) -> Problem:
        while self._match(TOK_LPAREN):
            self._advance()
            section = self._expect(TOK_KEYWORD).value
            if section == 'domain':
                problem.domain = self._read_name()
            elif section == 'objects':
                problem.objects.update(self._parse_typed_list())
            elif section == 'init':
                problem.init = self._parse_init()
            elif section == 'goal':
                problem.goal = self._parse_formula()
            else:
                # :requirements, :metric, ...
                self._skip_balanced()
                continue
            self._expect(TOK_RPAREN)
        return problem

    def _parse_init(self) -> list[tuple]:
        facts: list[tuple] = []
        while self._match(TOK_LPAREN):
            self._advance()
            if self._match(TOK_ID, '=') or self._cur().value in NUMERIC_HEADS:
                self._skip_balanced()
                continue
            atom = [self._read_name()]
            while not self._match(TOK_RPAREN):
                atom.append(self._read_name())
            self._advance()
            facts.append(tuple(atom))
        return facts

    # -- typed list  (e.g.  a b c - type  d e - type2  f g) ----------------

    def _parse_typed_list(self) -> list[tuple[str, str]]:
        """Return ``(name, type)`` pairs; untyped names get ``object``."""
        result: list[tuple[str, str]] = []
        names: list[str] = []
        while not self._match(TOK_RPAREN):
            if self._match(TOK_DASH):
                self._advance()
                typ = self._parse_type()
                result.extend((n, typ) for n in names)
                names = []
            else:
                names.append(self._read_name())
        result.extend((n, 'object') for n in names)
        return result

    def _parse_type(self) -> str:
        """Parse a type: simple id or ``(either t1 t2 ...)``."""
        if self._match(TOK_LPAREN):
            self._advance()
            self._expect(TOK_ID, 'either')
            types: list[str] = []
            while not self._match(TOK_RPAREN):
                types.append(self._read_name())
            self._advance()
            return '(either ' + ' '.join(types) + ')'
        return self._read_name()

    # -- formulas ------------------------------------------------------------

    def _parse_formula(self) -> list[Literal]:
        """Parse a conjunction of (possibly negated) atoms into a flat list."""
        self._expect(TOK_LPAREN)
        if self._match(TOK_RPAREN):
            self._advance()
            return []
        head_tok = self._cur()
        head = head_tok.value
        if head == 'and':
            self._advance()
            literals: list[Literal] = []
            while not self._match(TOK_RPAREN):
                literals.extend(self._parse_formula())
            self._advance()
            return literals
        if head == 'not':
            self._advance()
            inner = self._parse_formula()
            self._expect(TOK_RPAREN)
            if len(inner) != 1 or not inner[0].positive:
                raise ParseError(f"line {head_tok.line}: 'not' must wrap a single atom")
            lit = inner[0]
            return [Literal(False, lit.predicate, lit.args)]
        if head in UNSUPPORTED_HEADS:
            raise ParseError(f"line {head_tok.line}: '{head}' is not supported "
                             f"(STRIPS conjunctions only)")
        if head in NUMERIC_HEADS:
            self._advance()
            self._skip_balanced()
            return []
        pred = self._read_name()
        args: list[str] = []
        while not self._match(TOK_RPAREN):
            args.append(self._read_name())
        self._advance()
        return [Literal(True, pred, tuple(args))]


# ── Public helpers ────────────────────────────────────────────────────────────

def parse_pddl_text(text: str):
    return PDDLParser(tokenize(text)).parse()


def parse_pddl_file(path: str):
    """Convenience: read a file, tokenise, parse."""
    with open(path) as f:
        return parse_pddl_text(f.read())


def parse_domain_problem(domain_file: str, problem_file: str) -> tuple[Domain, Problem]:
    domain = parse_pddl_file(domain_file)
    problem = parse_pddl_file(problem_file)
    if not isinstance(domain, Domain):
        raise ParseError(f"{domain_file}: not a domain definition")
    if not isinstance(problem, Problem):
        raise ParseError(f"{problem_file}: not a problem definition")
    return domain, problem
