"""
grounder.py - Ground STRIPS actions from PDDL operator schemas.

For each action schema, enumerates all type-compatible object combinations,
evaluates static predicates and equality against the initial state, and
numbers the remaining facts to produce a GroundedProblem over integer ids.
"""

from __future__ import annotations
from itertools import product
from typing import Optional

from data_structures import GroundAction, GroundedProblem, CONNECTOR
from pddl_parser import ActionSchema, Domain, Literal, Problem, parse_domain_problem


def fact_name(atom: tuple) -> str:
    return CONNECTOR.join(atom)


def _type_members(typ: str) -> list[str]:
    if typ.startswith('(either '):
        return typ[len('(either '):-1].split()
    return [typ]


class Grounder:
    """Holds the parsed domain / problem and instantiates its schemas."""

    def __init__(self, domain: Domain, problem: Problem,
                 prune_irrelevant: bool = True, debug: int = 0):
        self.domain = domain
        self.problem = problem
        self.prune_irrelevant = prune_irrelevant
        self.debug = debug

        self.objects: dict[str, str] = dict(domain.constants)
        self.objects.update(problem.objects)
        self.init_atoms: set[tuple] = set(problem.init)
        self.types_table: dict[str, set[str]] = self._build_types_table()
        self.static_predicates: set[str] = self._collect_static_predicates()

    # ── Types ─────────────────────────────────────────────────────────────

    def _ancestors(self, typ: str) -> list[str]:
        chain = [typ]
        seen = {typ}
        parent = self.domain.types.get(typ)
        while parent is not None and parent not in seen:
            chain.append(parent)
            seen.add(parent)
            parent = self.domain.types.get(parent)
        return chain

    def _build_types_table(self) -> dict[str, set[str]]:
        """type → set of objects, closed under the type hierarchy."""
        table: dict[str, set[str]] = {'object': set()}
        for typ in self.domain.types:
            table.setdefault(typ, set())
        for obj, typ in self.objects.items():
            table['object'].add(obj)
            for member in _type_members(typ):
                for anc in self._ancestors(member):
                    table.setdefault(anc, set()).add(obj)
        return table

    def objects_for_type(self, typ: str) -> list[str]:
        found: set[str] = set()
        for member in _type_members(typ):
            found |= self.types_table.get(member, set())
        return sorted(found)

    # ── Static predicates ─────────────────────────────────────────────────

    def _collect_static_predicates(self) -> set[str]:
        """Predicates that no action schema ever adds or deletes."""
        changing: set[str] = set()
        for schema in self.domain.actions:
            for lit in schema.effects:
                changing.add(lit.predicate)
        used: set[str] = set(self.domain.predicates)
        used |= {atom[0] for atom in self.init_atoms}
        for schema in self.domain.actions:
            used |= {lit.predicate for lit in schema.preconds}
        return {p for p in used if p not in changing and p != '='}

    def _static_unary_filter(self, schema: ActionSchema) -> dict[str, set[str]]:
        """Restrict parameters through static unary preconditions.

        For untyped domains that encode types as predicates, e.g.
        ``(truck ?x)`` → only trucks can fill ``?x``.
        """
        allowed: dict[str, set[str]] = {}
        for lit in schema.preconds:
            if (lit.positive and len(lit.args) == 1
                    and lit.predicate in self.static_predicates
                    and lit.args[0].startswith('?')):
                objs = {atom[1] for atom in self.init_atoms
                        if len(atom) == 2 and atom[0] == lit.predicate}
                var = lit.args[0]
                allowed[var] = allowed[var] & objs if var in allowed else objs
        return allowed

    # ── Instantiation ─────────────────────────────────────────────────────

    @staticmethod
    def _bind(lit: Literal, insts: dict[str, str]) -> tuple:
        return (lit.predicate,) + tuple(insts.get(a, a) for a in lit.args)

    def _holds_statically(self, lit: Literal, insts: dict[str, str]) -> Optional[bool]:
        """Truth value of an equality or static literal, None if it is a fluent."""
        if lit.is_equality:
            a, b = (insts.get(x, x) for x in lit.args)
            return (a == b) == lit.positive
        if lit.predicate in self.static_predicates:
            return (self._bind(lit, insts) in self.init_atoms) == lit.positive
        return None

    def instantiate(self, schema: ActionSchema,
                    insts: dict[str, str]) -> Optional[tuple]:
        """Return ``(name, pos_pre, neg_pre, add, del)`` atoms, or None."""
        pos_pre: set[tuple] = set()
        neg_pre: set[tuple] = set()
        for lit in schema.preconds:
            static = self._holds_statically(lit, insts)
            if static is False:
                return None
            if static is None:
                (pos_pre if lit.positive else neg_pre).add(self._bind(lit, insts))
        if pos_pre & neg_pre:
            return None

        add_eff = {self._bind(lit, insts) for lit in schema.effects if lit.positive}
        # Delete-then-add: an atom both added and deleted ends up true
        del_eff = {self._bind(lit, insts) for lit in schema.effects
                   if not lit.positive} - add_eff
        if not add_eff and not del_eff:
            return None

        name = CONNECTOR.join([schema.name] + [insts[v] for v, _ in schema.params])
        return name, pos_pre, neg_pre, add_eff, del_eff

    def ground_schemas(self) -> list[tuple]:
        """Instantiate every schema over type-compatible object tuples."""
        grounded: list[tuple] = []
        seen_names: set[str] = set()
        for schema in self.domain.actions:
            narrowed = self._static_unary_filter(schema)
            obj_lists: list[list[str]] = []
            for var, typ in schema.params:
                objs = self.objects_for_type(typ)
                if var in narrowed:
                    objs = [o for o in objs if o in narrowed[var]]
                obj_lists.append(objs)
            variables = [v for v, _ in schema.params]
            for combo in product(*obj_lists):
                ga = self.instantiate(schema, dict(zip(variables, combo)))
                if ga is None or ga[0] in seen_names:
                    continue
                seen_names.add(ga[0])
                grounded.append(ga)
        return grounded

    # ── Relevance ─────────────────────────────────────────────────────────

    @staticmethod
    def _relevant(grounded: list[tuple], goal_atoms: set[tuple]) -> list[tuple]:
        """Backward relevance fixpoint: keep actions touching relevant atoms."""
        relevant = set(goal_atoms)
        keep = [False] * len(grounded)
        changed = True
        while changed:
            changed = False
            for i, (_, pos_pre, neg_pre, add_eff, del_eff) in enumerate(grounded):
                if keep[i] or not ((add_eff | del_eff) & relevant):
                    continue
                keep[i] = True
                relevant |= pos_pre | neg_pre
                changed = True
        return [ga for ga, k in zip(grounded, keep) if k]

    # ── Entry point ───────────────────────────────────────────────────────

    def ground(self) -> GroundedProblem:
        goal_pos: set[tuple] = set()
        goal_neg: set[tuple] = set()
        for lit in self.problem.goal:
            if lit.is_equality:
                if not self._holds_statically(lit, {}):
                    # A fact no action adds keeps the goal unreachable
                    goal_pos.add(('unsatisfiable',) + self._bind(lit, {}))
                continue
            (goal_pos if lit.positive else goal_neg).add(self._bind(lit, {}))

        grounded = self.ground_schemas()
        before = len(grounded)
        if self.prune_irrelevant:
            grounded = self._relevant(grounded, goal_pos | goal_neg)
        if self.debug >= 1:
            print(f"  Ground actions: {before} -> {len(grounded)} after relevance pruning")

        atoms: set[tuple] = goal_pos | goal_neg
        for _, pos_pre, neg_pre, add_eff, del_eff in grounded:
            atoms |= pos_pre | neg_pre | add_eff | del_eff
        ordered = sorted(atoms, key=fact_name)
        ids = {atom: i for i, atom in enumerate(ordered)}

        def to_ids(group):
            return frozenset(ids[a] for a in group)

        actions = [
            GroundAction(id=i, name=name, pos_pre=to_ids(pos_pre),
                         add_eff=to_ids(add_eff), del_eff=to_ids(del_eff),
                         neg_pre=to_ids(neg_pre))
            for i, (name, pos_pre, neg_pre, add_eff, del_eff) in enumerate(grounded)
        ]
        return GroundedProblem(
            fact_names=[fact_name(a) for a in ordered],
            actions=actions,
            initial=to_ids(a for a in self.init_atoms if a in ids),
            goal_pos=to_ids(goal_pos),
            goal_neg=to_ids(goal_neg),
        )


def load_grounded_problem(domain_file: str, problem_file: str,
                          prune_irrelevant: bool = True,
                          debug: int = 0) -> GroundedProblem:
    """Parse domain + problem PDDL and ground them."""
    domain, problem = parse_domain_problem(domain_file, problem_file)
    return Grounder(domain, problem, prune_irrelevant, debug).ground()
