import pickle
from collections import deque, defaultdict
from typing import Dict, Any, Iterable, Optional, Sequence, Set, cast

from tierfsa.label import label_str
from tierfsa._private import util


class FSA:
    """Finite-state acceptor with integer state ids.

    States are indices into the automaton's own tables, so state ids can be
    passed around (e.g. in correspondence maps) without tying automata
    together. Edges form a partial function: at most one target per
    (state, label).

    Besides the accepting set, an FSA carries a set of *looping* states. During
    composition a looping state behaves as if it had a self-loop on every label
    it has no explicit edge for. This stands in for an open-ended alphabet
    ("any segment not relevant on this tier"). Looping states never decide
    acceptance of raw input: `accepts` and `words` only follow explicit edges.
    """

    # ==================
    # Initializers
    # ==================

    def __init__(self):
        """Creates an FSA with the single, non-accepting state 0."""
        self.starting = 0
        """Id of the initial state"""
        self.accepting: Set[int] = set()
        """Ids of the final (accepting) states"""
        self.looping: Set[int] = set()
        """Ids of the states that implicitly self-loop during composition"""
        self.transitions: Dict[int, Dict[Any, int]] = {0: {}}
        """state -> {label: target}"""
        self.largest_state = 0
        """Largest id ever allocated; ids are never reused"""

    @classmethod
    def from_sequences(cls, sequences: Iterable[Sequence], looping_final=False) -> 'FSA':
        """Build a prefix-tree acceptor for an iterable of label sequences.
           Keyword arguments:
           looping_final -- if True, the state at the end of each sequence is also
                            marked looping.
        """
        newfsa = cls()
        for seq in sequences:
            state = newfsa.starting
            for label in seq:
                target = newfsa.transitions[state].get(label)
                if target is None:
                    target = newfsa.add_node()
                    newfsa.add_edge(state, label, target)
                state = target
            newfsa.accepting.add(state)
            if looping_final:
                newfsa.looping.add(state)
        return newfsa

    # ==================
    # Mutation
    # ==================

    def add_node(self) -> int:
        """Allocate a fresh state with no outgoing edges and return its id."""
        self.largest_state += 1
        self.transitions[self.largest_state] = {}
        return self.largest_state

    def add_edge(self, source: int, label, target: int):
        """Add an edge source -label-> target, unless source already has an edge
           on label. The first edge added for a (state, label) pair wins."""
        self.transitions[source].setdefault(label, target)

    def remove_state(self, state: int):
        """Remove a state, its outgoing edges, and all edges leading to it."""
        self.looping.discard(state)
        self.accepting.discard(state)
        self.transitions.pop(state, None)
        for edges in self.transitions.values():
            for label in [l for l, t in edges.items() if t == state]:
                del edges[label]

    def leave_out_useless_states(self) -> Set[int]:
        """Repeatedly remove non-accepting states without outgoing edges.
           Removing a state deletes the edges into it, which can leave other
           states without edges, hence the fixpoint. This is not a reachability
           trim: an unreachable state with a live outgoing edge is kept.

           The start state gets no special treatment. If it is removed the
           automaton accepts nothing (see `is_empty`).

           Returns the set of removed state ids."""
        removed = set()
        while True:
            useless = {s for s, edges in self.transitions.items()
                       if s not in self.accepting and not edges}
            if not useless:
                return removed
            for s in useless:
                self.remove_state(s)
            removed |= useless

    # ==================
    # Queries
    # ==================

    @property
    def states(self) -> Set[int]:
        """The set of live state ids."""
        return set(self.transitions)

    def is_empty(self) -> bool:
        """True if the start state has been pruned away, i.e. nothing is accepted."""
        return self.starting not in self.transitions

    def accepts(self, sequence: Iterable) -> bool:
        """Follow explicit edges only. Looping states do not absorb unknown labels
           here; see algorithms.accepts_with_loops for the composition semantics."""
        if self.is_empty():
            return False
        state = self.starting
        for label in sequence:
            if label not in self.transitions[state]:
                return False
            state = self.transitions[state][label]
        return state in self.accepting

    def words(self, maxlen: Optional[int] = None):
        """A generator to yield all accepted label sequences along explicit edges,
           shortest first. Does not terminate on a cyclic automaton unless maxlen
           is given."""
        if self.is_empty():
            return
        Q = deque([(self.starting, [])])
        while Q:
            s, seq = Q.popleft()
            if s in self.accepting:
                yield seq
            if maxlen is not None and len(seq) >= maxlen:
                continue
            for label in util.sorted_labels(self.transitions[s]):
                Q.append((self.transitions[s][label], seq + [label]))

    def alphabet(self) -> set:
        """All labels that occur on some edge."""
        return {l for edges in self.transitions.values() for l in edges}

    def is_acyclic(self) -> bool:
        """True if no explicit cycle is reachable from the start state."""
        return self.find_cycle() is None

    def find_cycle(self) -> Optional[int]:
        """Return a state on an explicit cycle reachable from the start, or None."""
        if self.is_empty():
            return None
        WHITE, GRAY, BLACK = 0, 1, 2
        color = {self.starting: GRAY}
        stack = [(self.starting, iter(set(self.transitions[self.starting].values())))]
        while stack:
            u, it = stack[-1]
            try:
                v = next(it)
                c = color.get(v, WHITE)
                if c == WHITE:
                    color[v] = GRAY
                    stack.append((v, iter(set(self.transitions[v].values()))))
                elif c == GRAY:
                    return v  # back edge
            except StopIteration:
                stack.pop()
                color[u] = BLACK
        return None

    def arccount(self) -> int:
        """Counts number of edges in the FSA."""
        return sum(len(edges) for edges in self.transitions.values())

    # ==================
    # Operations
    # ==================

    def intersection(self, other: 'FSA') -> 'FSA':
        """Product of self and other; correspondence maps are discarded.
           Use algorithms.intersection to get them."""
        from tierfsa.algorithms import intersection
        result, _, _ = intersection(self, other)
        return result

    # ==================
    # Rendering
    # ==================

    def view(self, show_alphabet=True) -> 'graphviz.Digraph':
        """Creates a 'graphviz.Digraph' object to view the FSA. Will automatically display the FSA in Jupyter.

            :param show_alphabet: displays the alphabet below the FSA
            :return: A Digraph object which will automatically display in Jupyter.

           Accepting states are double circles, looping states are dashed and the
           start state is bold. If you would like to display the FSA from a
           non-Jupyter environment, please use :code:`FSA.render`
        """
        import graphviz
        if not util.check_graphviz_installed():
            raise EnvironmentError("Graphviz executable not found. Please install [Graphviz](https://www.graphviz.org/download/). On macOS, use `brew install graphviz`.")

        sigma = "&Sigma;: {" + ','.join(label_str(a) for a in util.sorted_labels(self.alphabet())) + "}" \
            if show_alphabet else ""
        g = graphviz.Digraph('FSA', graph_attr={"label": sigma, "rankdir": "LR"})
        g.attr(rankdir='LR', size='8,5')
        for s in sorted(self.transitions):
            style = ['filled']
            if s == self.starting:
                style.append('bold')
            if s in self.looping:
                style.append('dashed')
            shape = 'doublecircle' if s in self.accepting else 'circle'
            g.node(str(s), shape=shape, style=', '.join(style))
        for s in sorted(self.transitions):
            grouped_targets = defaultdict(list)
            for label in util.sorted_labels(self.transitions[s]):
                grouped_targets[self.transitions[s][label]].append(label_str(label))
            for target, labels in grouped_targets.items():
                g.edge(str(s), str(target), label=graphviz.nohtml(', '.join(labels)))
        return g

    def render(self, view=True, filename: str='FSA', format='pdf', tight=True):
        """
        Renders the FSA to a file and optionally opens the file.
        :param view: If True, the rendered file will be opened.
        :param format: The file format for the Digraph. Typically 'pdf', 'png', or 'svg'. View all formats: https://graphviz.org/docs/outputs/
        :param tight: If False, the rendered file will have whitespace margins around the graph.
        """
        import graphviz
        digraph = cast(graphviz.Digraph, self.view())
        digraph.format = format
        if tight:
            digraph.graph_attr['margin'] = '0' # Remove padding
        digraph.render(view=view, filename=filename, cleanup=True)

    def display(self, show_alphabet=True):
        """Display the FSA in a Jupyter notebook."""
        from IPython.display import display
        display(self.view(show_alphabet=show_alphabet))

    # ==================
    # Serialization
    # ==================

    def todict(self) -> Dict[str, Any]:
        """Returns a plain dictionary representation, suitable for JSON when
           the labels are strings or ints."""
        return {
            "starting": self.starting,
            "largest_state": self.largest_state,
            "states": sorted(self.transitions),
            "accepting": sorted(self.accepting),
            "looping": sorted(self.looping),
            "transitions": [[s, label, self.transitions[s][label]]
                            for s in sorted(self.transitions)
                            for label in util.sorted_labels(self.transitions[s])],
        }

    @classmethod
    def fromdict(cls, fsadict: Dict) -> 'FSA':
        """Inverse of `todict`."""
        newfsa = cls()
        newfsa.starting = fsadict["starting"]
        newfsa.largest_state = fsadict["largest_state"]
        newfsa.transitions = {s: {} for s in fsadict["states"]}
        for s, label, t in fsadict["transitions"]:
            if s not in newfsa.transitions or t not in newfsa.transitions:
                raise ValueError(f"Transition {s} -{label}-> {t} refers to an undeclared state")
            newfsa.add_edge(s, label, t)
        newfsa.accepting = set(fsadict["accepting"])
        newfsa.looping = set(fsadict["looping"])
        return newfsa

    def save(self, path: str):
        """Saves the current FSA to a file.
           Args:
               path (str): The path to save to (without a file extension)
        """
        if not path.endswith('.fsa'):
            path = path + '.fsa'
        with open(path, 'wb') as f:
            pickle.dump(self, f)

    @classmethod
    def load(cls, path: str) -> 'FSA':
        """Loads an FSA from a .fsa file.
           Args:
               path (str): The path to load from. Must be a `.fsa` file
        """
        if not path.endswith('.fsa'):
            path = path + '.fsa'
        try:
            with open(path, 'rb') as f:
                fsa = pickle.load(f)
        except Exception as e:
            raise IOError(f"Error reading file {path}: {str(e)}")
        return fsa

    # ==================
    # Magic Methods
    # ==================

    def __copy__(self):
        """Copy the tables. State ids are preserved."""
        newfsa = FSA()
        newfsa.starting = self.starting
        newfsa.largest_state = self.largest_state
        newfsa.accepting = set(self.accepting)
        newfsa.looping = set(self.looping)
        newfsa.transitions = {s: dict(edges) for s, edges in self.transitions.items()}
        return newfsa

    def __len__(self):
        """Return the number of states."""
        return len(self.transitions)

    def __and__(self, other):
        """Intersection."""
        return self.intersection(other)

    def __str__(self):
        """Traversal dump for debugging. Breadth-first from the start state, one
           line per state: the id, '.' if accepting, '$' if looping, then
           ' label -> target' for each edge."""
        if self.is_empty():
            return ""
        lines = []
        printed = {self.starting}
        Q = deque([self.starting])
        while Q:
            s = Q.popleft()
            line = str(s)
            if s in self.accepting:
                line += '.'
            if s in self.looping:
                line += '$'
            for label in util.sorted_labels(self.transitions[s]):
                target = self.transitions[s][label]
                line += f" {label_str(label)} -> {target}"
                if target not in printed:
                    printed.add(target)
                    Q.append(target)
            lines.append(line)
        return "\n".join(lines) + "\n"
