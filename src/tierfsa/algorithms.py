#!/usr/bin/env python

"""Defines common algorithms over FSAs"""
import itertools
import logging
from collections import deque
from typing import Dict, Iterable, Set, Tuple

from tierfsa.fsa import FSA
from tierfsa._private.exceptions import CyclicAutomatonError
from tierfsa._private.util import sorted_labels

logger = logging.getLogger(__file__)

StateMap = Dict[int, Set[int]]


def intersection(m1: 'FSA', m2: 'FSA') -> Tuple['FSA', StateMap, StateMap]:
    """Product (language intersection) of m1 and m2.

       Returns (result, map1, map2) where map1 maps each state of m1 to the set
       of result states it corresponds to, and likewise map2 for m2.

       Each result state r is built for a pair (s1, s2) of input states. From
       such a pair, a label is followed
         - when both s1 and s2 have an edge on it;
         - when only s1 has one and s2 is looping (m2 stays at s2);
         - when only s2 has one and s1 is looping (m1 stays at s1).
       Any other label is dropped. A fresh result state is created for every new
       result edge, so the product is an unfolding of label paths; the inputs
       must therefore be acyclic on explicit edges. If an edge on the label
       already leaves r, its target is reused and its accepting/looping flags
       are narrowed to those shared by every pair that reaches it.

       Finally, non-accepting dead ends are pruned from the result and the
       pruned ids are removed from both maps.
    """
    for m in (m1, m2):
        cycle = m.find_cycle()
        if cycle is not None:
            raise CyclicAutomatonError(cycle)

    result = FSA()
    map1: StateMap = {}
    map2: StateMap = {}
    if m1.is_empty() or m2.is_empty():
        result.remove_state(result.starting)
        return result, map1, map2

    r0 = result.starting
    map1[m1.starting] = {r0}
    map2[m2.starting] = {r0}
    if m1.starting in m1.accepting and m2.starting in m2.accepting:
        result.accepting.add(r0)
    if m1.starting in m1.looping and m2.starting in m2.looping:
        result.looping.add(r0)

    todo = deque([(m1.starting, m2.starting, r0)])
    visited = {(m1.starting, m2.starting, r0)}

    def _follow(r, label, x1, x2, accepting, looping):
        """Create or reuse the result edge from r on label for the pair (x1, x2)."""
        rn = result.transitions[r].get(label)
        if rn is None:
            rn = result.add_node()
            result.add_edge(r, label, rn)
            if accepting:
                result.accepting.add(rn)
            if looping:
                result.looping.add(rn)
        else:
            if not accepting:
                result.accepting.discard(rn)
            if not looping:
                result.looping.discard(rn)
        map1.setdefault(x1, set()).add(rn)
        map2.setdefault(x2, set()).add(rn)
        if (x1, x2, rn) not in visited:
            visited.add((x1, x2, rn))
            todo.append((x1, x2, rn))

    while todo:
        s1, s2, r = todo.popleft()
        edges1, edges2 = m1.transitions[s1], m2.transitions[s2]
        for label in sorted_labels(edges1):
            e1 = edges1[label]
            if label in edges2:
                e2 = edges2[label]
                _follow(r, label, e1, e2,
                        e1 in m1.accepting and e2 in m2.accepting,
                        e1 in m1.looping and e2 in m2.looping)
            elif s2 in m2.looping:
                _follow(r, label, e1, s2,
                        e1 in m1.accepting and s2 in m2.accepting,
                        e1 in m1.looping)
            else:
                logger.debug("Dropping label %r at (%s, %s): only in first automaton", label, s1, s2)
        for label in sorted_labels(edges2.keys() - edges1.keys()):
            e2 = edges2[label]
            if s1 in m1.looping:
                _follow(r, label, s1, e2,
                        s1 in m1.accepting and e2 in m2.accepting,
                        e2 in m2.looping)
            else:
                logger.debug("Dropping label %r at (%s, %s): only in second automaton", label, s1, s2)

    built = len(result)
    removed = result.leave_out_useless_states()
    for m in (map1, map2):
        for s in list(m):
            m[s] -= removed
            if not m[s]:
                del m[s]
    logger.debug("Intersection built %d states, pruned %d", built, len(removed))
    return result, map1, map2


def accepts_with_loops(fsa: 'FSA', sequence: Iterable) -> bool:
    """Run a sequence through an FSA under composition semantics: take the
       explicit edge if there is one, otherwise stay put if the state is looping,
       otherwise reject. This is the reading under which intersection is sound;
       it is not how an FSA accepts raw input (use FSA.accepts for that)."""
    if fsa.is_empty():
        return False
    state = fsa.starting
    for label in sequence:
        edges = fsa.transitions[state]
        if label in edges:
            state = edges[label]
        elif state not in fsa.looping:
            return False
    return state in fsa.accepting


def language(fsa: 'FSA', alphabet: Iterable, maxlen: int, loops=True) -> Set[tuple]:
    """All sequences over 'alphabet' of length <= maxlen accepted by fsa.
       With loops=True, uses accepts_with_loops, otherwise FSA.accepts."""
    accepts = (lambda seq: accepts_with_loops(fsa, seq)) if loops else fsa.accepts
    symbols = sorted_labels(set(alphabet))
    return {seq for n in range(maxlen + 1)
            for seq in itertools.product(symbols, repeat=n) if accepts(seq)}
