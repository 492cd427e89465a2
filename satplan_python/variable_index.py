"""
variable_index.py - Bijection between (entity, time step) pairs and SAT
variable numbers.

Variables are numbered from a single counter starting at 1, in order of
first request, so ids already handed out never move when the horizon grows.
The reverse lookup table is keyed by one scalar built with the Cantor
pairing function, which is a bijection N x N -> N and cannot collide however
large entity ids and time steps get.
"""

from __future__ import annotations
from math import isqrt
from typing import NamedTuple

from data_structures import UnknownVariable

# Entity kinds
FACT = 0
ACTION = 1
AUX = 2

_KIND_NAMES = {FACT: 'fact', ACTION: 'action', AUX: 'aux'}
_NUM_KINDS = 3


class Entity(NamedTuple):
    kind: int
    ident: int


def pair(a: int, b: int) -> int:
    """Cantor pairing of two non-negative integers."""
    if a < 0 or b < 0:
        raise ValueError(f"pair() needs non-negative integers, got ({a}, {b})")
    s = a + b
    return s * (s + 1) // 2 + b


def unpair(c: int) -> tuple[int, int]:
    """Exact inverse of :func:`pair`."""
    if c < 0:
        raise ValueError(f"unpair() needs a non-negative integer, got {c}")
    w = (isqrt(8 * c + 1) - 1) // 2
    b = c - w * (w + 1) // 2
    return w - b, b


def entity_key(entity: Entity, t: int) -> int:
    """Fold (kind, ident, t) into one scalar key."""
    if entity.ident < 0:
        raise ValueError(f"negative entity id {entity.ident}")
    return pair(_NUM_KINDS * entity.ident + entity.kind, t)


def key_entity(key: int) -> tuple[Entity, int]:
    folded, t = unpair(key)
    ident, kind = divmod(folded, _NUM_KINDS)
    return Entity(kind, ident), t


class VariableIndex:
    """Allocates SAT variables for time-indexed facts and actions."""

    def __init__(self, fact_names: list[str] | None = None,
                 action_names: list[str] | None = None):
        self.numvar: int = 0
        self._key2var: dict[int, int] = {}
        self._var2key: list[int] = [-1]   # 1-indexed
        self._fact_names = fact_names or []
        self._action_names = action_names or []
        self._num_aux = 0

    def __len__(self) -> int:
        return self.numvar

    def __contains__(self, var: int) -> bool:
        return 1 <= var <= self.numvar

    def id_of(self, entity: Entity, t: int) -> int:
        """Return the variable for *entity* at step *t*, allocating on first use."""
        key = entity_key(entity, t)
        var = self._key2var.get(key)
        if var is None:
            self.numvar += 1
            var = self.numvar
            self._key2var[key] = var
            self._var2key.append(key)
        return var

    def lookup(self, entity: Entity, t: int) -> int | None:
        """Return the variable for *entity* at *t* without allocating."""
        return self._key2var.get(entity_key(entity, t))

    def fact(self, fi: int, t: int) -> int:
        return self.id_of(Entity(FACT, fi), t)

    def action(self, ai: int, t: int) -> int:
        return self.id_of(Entity(ACTION, ai), t)

    def fresh_aux(self, t: int) -> int:
        """Allocate a new auxiliary variable attached to step *t*."""
        var = self.id_of(Entity(AUX, self._num_aux), t)
        self._num_aux += 1
        return var

    def entity_of(self, var: int) -> tuple[Entity, int]:
        """Return the (entity, t) pair a variable was allocated for."""
        if var not in self:
            raise UnknownVariable(f"variable {var} was never allocated "
                                  f"(highest is {self.numvar})")
        return key_entity(self._var2key[var])

    def name_of(self, var: int) -> str:
        entity, t = self.entity_of(var)
        if entity.kind == FACT and entity.ident < len(self._fact_names):
            label = self._fact_names[entity.ident]
        elif entity.kind == ACTION and entity.ident < len(self._action_names):
            label = self._action_names[entity.ident]
        else:
            label = f"{_KIND_NAMES[entity.kind]}{entity.ident}"
        return f"{label}@{t}"
