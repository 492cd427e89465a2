"""
strips_encoder.py - Step-wise STRIPS to CNF SAT encoding.

Encodes a grounded STRIPS planning problem layer by layer, so that the
clauses emitted for steps 0..k are exactly the CNF of "a plan of length k
exists" (minus the goal, which is returned as solver assumptions).

  Variables (allocated through a VariableIndex):
    fact(f, t)    - fact f is true at time t     (t = 0 .. k)
    action(a, t)  - action a executes at time t  (t = 0 .. k-1)

  Clauses:
    1. Initial state (closed world): [+f_0] or [-f_0] for every fact
    2. Goal: [+f_k] or [-f_k] per goal literal, as assumptions
    3. Preconditions:  ¬a_t ∨ f_t  (pos pre)  and  ¬a_t ∨ ¬f_t  (neg pre)
    4. Effects:        ¬a_t ∨ f_{t+1}  (add)   and  ¬a_t ∨ ¬f_{t+1}  (del)
    5. Explanatory frame axioms:
         ¬f_{t+1} ∨ f_t ∨ (∨ adders_of_f)     (f becomes true)
         f_{t+1} ∨ ¬f_t ∨ (∨ deleters_of_f)   (f becomes false)
    6. Mutex: ¬a1_t ∨ ¬a2_t for interfering action pairs
    7. Sequential mode only: at most one action per step (ladder encoding)
"""

from __future__ import annotations

from data_structures import GroundedProblem, GroundAction
from variable_index import VariableIndex

FAMILIES = ('init', 'precond', 'effect', 'frame', 'mutex', 'amo')


class STRIPSEncoder:
    """Encodes a grounded STRIPS problem as CNF, one time step at a time."""

    def __init__(self, problem: GroundedProblem,
                 index: VariableIndex | None = None,
                 sequential: bool = True):
        """
        Parameters
        ----------
        problem:     the grounded problem
        index:       variable index to allocate from (a fresh one if None)
        sequential:  if True also emit at-most-one action per step
        """
        self.problem = problem
        self.index = index if index is not None else VariableIndex(
            problem.fact_names, [a.name for a in problem.actions])
        self.sequential = sequential

        self.horizon: int = -1          # last encoded fact layer
        self.family_counts: dict[str, int] = dict.fromkeys(FAMILIES, 0)
        self._clauses: list[list[int]] = []

        nf = problem.num_facts
        self._adders: list[list[int]] = [[] for _ in range(nf)]
        self._deleters: list[list[int]] = [[] for _ in range(nf)]
        self._needers: list[list[int]] = [[] for _ in range(nf)]       # pos pre
        self._forbidders: list[list[int]] = [[] for _ in range(nf)]    # neg pre
        self._precompute_action_maps()

        self.mutex_pairs: list[tuple[int, int]] = self._precompute_mutexes()

    def _precompute_action_maps(self):
        """Build adders/deleters/precondition maps for each fact."""
        for ga in self.problem.actions:
            for f in sorted(ga.add_eff):
                self._adders[f].append(ga.id)
            for f in sorted(ga.del_eff):
                self._deleters[f].append(ga.id)
            for f in sorted(ga.pos_pre):
                self._needers[f].append(ga.id)
            for f in sorted(ga.neg_pre):
                self._forbidders[f].append(ga.id)

    def _precompute_mutexes(self) -> list[tuple[int, int]]:
        """Collect interfering action pairs through the per-fact maps.

        Two actions interfere when one deletes a positive precondition of
        the other, one adds a negative precondition of the other, or both
        write (add or delete) the same fact.
        """
        pairs: set[tuple[int, int]] = set()

        def link(xs, ys):
            for x in xs:
                for y in ys:
                    if x != y:
                        pairs.add((x, y) if x < y else (y, x))

        for f in range(self.problem.num_facts):
            writers = sorted(set(self._adders[f]) | set(self._deleters[f]))
            link(writers, writers)
            link(self._deleters[f], self._needers[f])
            link(self._adders[f], self._forbidders[f])
        return sorted(pairs)

    @staticmethod
    def interfere(a: GroundAction, b: GroundAction) -> bool:
        """Direct pairwise version of the interference test."""
        if a.del_eff & b.pos_pre or b.del_eff & a.pos_pre:
            return True
        if a.add_eff & b.neg_pre or b.add_eff & a.neg_pre:
            return True
        return bool((a.add_eff | a.del_eff) & (b.add_eff | b.del_eff))

    # ── Variables ────────────────────────────────────────────────────────

    def _fact_var(self, fi: int, t: int) -> int:
        return self.index.fact(fi, t)

    def _action_var(self, ai: int, t: int) -> int:
        return self.index.action(ai, t)

    def _allocate_facts(self, t: int):
        for fi in range(self.problem.num_facts):
            self._fact_var(fi, t)

    def _allocate_actions(self, t: int):
        for ga in self.problem.actions:
            self._action_var(ga.id, t)

    def action_vars_at(self, t: int) -> list[tuple[int, int]]:
        """Return ``(action id, variable)`` for every action at step *t*."""
        if not 0 <= t < self.horizon:
            return []
        return [(ga.id, self._action_var(ga.id, t)) for ga in self.problem.actions]

    # ── Step API ─────────────────────────────────────────────────────────

    def encode_step0(self) -> list[list[int]]:
        """Allocate layer 0 and emit the initial state."""
        if self.horizon != -1:
            raise ValueError("step 0 is already encoded")
        self._clauses = []
        self._allocate_facts(0)
        self._generate_initial_state()
        self.horizon = 0
        return self._clauses

    def encode_transition(self, t: int) -> list[list[int]]:
        """Emit every clause linking layer t-1 to layer t."""
        if t != self.horizon + 1 or t < 1:
            raise ValueError(f"cannot encode step {t} after step {self.horizon}")
        self._clauses = []
        prev = t - 1
        self._allocate_actions(prev)
        self._allocate_facts(t)

        self._generate_preconditions(prev)
        self._generate_effects(prev)
        self._generate_frame_axioms(prev)
        self._generate_mutex(prev)
        if self.sequential:
            self._generate_at_most_one(prev)

        self.horizon = t
        return self._clauses

    def encode_until(self, k: int) -> list[list[int]]:
        """Encode every missing step up to *k* and return the new clauses."""
        clauses: list[list[int]] = []
        if self.horizon < 0:
            clauses.extend(self.encode_step0())
        for t in range(self.horizon + 1, k + 1):
            clauses.extend(self.encode_transition(t))
        return clauses

    def goal_assumptions(self, k: int) -> list[int]:
        """Goal literals bound to fact layer *k*."""
        if not 0 <= k <= self.horizon:
            raise ValueError(f"layer {k} is not encoded (horizon {self.horizon})")
        lits = [self._fact_var(f, k) for f in sorted(self.problem.goal_pos)]
        lits += [-self._fact_var(f, k) for f in sorted(self.problem.goal_neg)]
        return lits

    # ── Clause generators ─────────────────────────────────────────────────

    def _emit(self, family: str, clause: list[int]):
        self._clauses.append(clause)
        self.family_counts[family] += 1

    def _generate_initial_state(self):
        """Emit unit clauses for the initial state (closed world assumption)."""
        initial = self.problem.initial
        for fi in range(self.problem.num_facts):
            v = self._fact_var(fi, 0)
            self._emit('init', [v] if fi in initial else [-v])

    def _generate_preconditions(self, t: int):
        for ga in self.problem.actions:
            av = self._action_var(ga.id, t)
            for f in sorted(ga.pos_pre):
                self._emit('precond', [-av, self._fact_var(f, t)])
            for f in sorted(ga.neg_pre):
                self._emit('precond', [-av, -self._fact_var(f, t)])

    def _generate_effects(self, t: int):
        for ga in self.problem.actions:
            av = self._action_var(ga.id, t)
            for f in sorted(ga.add_eff):
                self._emit('effect', [-av, self._fact_var(f, t + 1)])
            for f in sorted(ga.del_eff):
                self._emit('effect', [-av, -self._fact_var(f, t + 1)])

    def _generate_frame_axioms(self, t: int):
        """Emit explanatory frame axioms for each fact between t and t+1."""
        for fi in range(self.problem.num_facts):
            fv_cur = self._fact_var(fi, t)
            fv_next = self._fact_var(fi, t + 1)

            # f becomes TRUE: ¬f_{t+1} ∨ f_t ∨ (∨ adders_t)
            adder_avs = [self._action_var(ai, t) for ai in self._adders[fi]]
            self._emit('frame', [-fv_next, fv_cur] + adder_avs)

            # f becomes FALSE: f_{t+1} ∨ ¬f_t ∨ (∨ deleters_t)
            deleter_avs = [self._action_var(ai, t) for ai in self._deleters[fi]]
            self._emit('frame', [fv_next, -fv_cur] + deleter_avs)

    def _generate_mutex(self, t: int):
        for i, j in self.mutex_pairs:
            self._emit('mutex', [-self._action_var(i, t), -self._action_var(j, t)])

    def _generate_at_most_one(self, t: int):
        lits = [self._action_var(ga.id, t) for ga in self.problem.actions]
        self._amo_ladder(lits, t)

    def _amo_ladder(self, lits: list[int], t: int):
        """At-most-one via ladder encoding. O(k) clauses, O(k) aux vars."""
        k = len(lits)
        if k <= 1:
            return
        if k <= 3:
            for i in range(k):
                for j in range(i + 1, k):
                    self._emit('amo', [-lits[i], -lits[j]])
            return

        aux = [self.index.fresh_aux(t) for _ in range(k - 1)]

        self._emit('amo', [-lits[0], aux[0]])
        for i in range(1, k - 1):
            self._emit('amo', [-lits[i], aux[i]])
            self._emit('amo', [-aux[i - 1], aux[i]])
            self._emit('amo', [-lits[i], -aux[i - 1]])
        self._emit('amo', [-lits[k - 1], -aux[k - 2]])

    # ── Debug helpers ────────────────────────────────────────────────────

    def to_dimacs(self, clauses: list[list[int]]) -> str:
        """Return a DIMACS CNF string for *clauses* over the current index."""
        lines = [f"p cnf {self.index.numvar} {len(clauses)}"]
        for clause in clauses:
            lines.append(' '.join(str(lit) for lit in clause) + ' 0')
        return '\n'.join(lines) + '\n'

    def print_variable_map(self):
        """Print variable number → name mapping."""
        for i in range(1, self.index.numvar + 1):
            print(f"  {i}: {self.index.name_of(i)}")
