import copy
import json
import os
import unittest
from tempfile import TemporaryDirectory
from tierfsa.fsa import FSA
from tierfsa.label import WILD, is_wild, is_label, label_str
from tierfsa._private import util


def build(edges, accepting=(), looping=()):
    """FSA from (source, label, target) triples; states 0..max id are allocated."""
    f = FSA()
    top = max([0] + [max(s, t) for s, _, t in edges])
    while f.largest_state < top:
        f.add_node()
    for s, label, t in edges:
        f.add_edge(s, label, t)
    f.accepting |= set(accepting)
    f.looping |= set(looping)
    return f


class TestFSA(unittest.TestCase):
    """Test the automaton tables and mutation primitives"""
    def test_new(self):
        f = FSA()
        self.assertEqual(f.starting, 0)
        self.assertEqual(f.transitions, {0: {}})
        self.assertEqual(f.accepting, set())
        self.assertEqual(f.looping, set())
        self.assertEqual(len(f), 1)
        self.assertEqual(str(f), "0\n")

    def test_add_node(self):
        f = FSA()
        self.assertEqual(f.add_node(), 1)
        self.assertEqual(f.add_node(), 2)
        self.assertEqual(f.largest_state, 2)
        self.assertEqual(f.transitions[2], {})
        self.assertEqual(f.accepting, set())
        self.assertEqual(f.looping, set())

    def test_ids_not_reused(self):
        f = build([(0, 'a', 1)])
        f.remove_state(1)
        self.assertEqual(f.add_node(), 2)

    def test_add_edge_first_wins(self):
        f = build([(0, 'a', 1)])
        f.add_node()
        f.add_edge(0, 'a', 2)
        self.assertEqual(f.transitions[0], {'a': 1})
        self.assertEqual(f.transitions[2], {})

    def test_add_edge_missing_state(self):
        f = FSA()
        with self.assertRaises(KeyError):
            f.add_edge(5, 'a', 0)

    def test_remove_state(self):
        f = build([(0, 'a', 1), (0, 'b', 2), (1, 'c', 2)], accepting=[2], looping=[2])
        f.remove_state(2)
        self.assertEqual(f.transitions, {0: {'a': 1}, 1: {}})
        self.assertEqual(f.accepting, set())
        self.assertEqual(f.looping, set())

    def test_accepts_ignores_looping(self):
        """A looping state does not absorb labels outside composition"""
        f = FSA()
        f.accepting.add(0)
        f.looping.add(0)
        self.assertTrue(f.accepts([]))
        self.assertFalse(f.accepts(['x']))

    def test_from_sequences(self):
        f = FSA.from_sequences([['a', 'b'], ['a', 'c'], []])
        self.assertEqual(len(f), 4)
        self.assertEqual(list(f.words()), [[], ['a', 'b'], ['a', 'c']])
        self.assertTrue(f.accepts(['a', 'c']))
        self.assertFalse(f.accepts(['a']))
        self.assertEqual(f.looping, set())
        g = FSA.from_sequences(["ab"], looping_final=True)
        self.assertEqual(g.looping, g.accepting)
        self.assertEqual(g.alphabet(), {'a', 'b'})

    def test_words_maxlen(self):
        f = build([(0, 'a', 0)], accepting=[0])
        self.assertEqual(list(f.words(maxlen=2)), [[], ['a'], ['a', 'a']])

    def test_cycles(self):
        self.assertTrue(FSA.from_sequences(["abc", "abd"]).is_acyclic())
        diamond = build([(0, 'a', 1), (0, 'b', 1), (1, 'c', 2)], accepting=[2])
        self.assertTrue(diamond.is_acyclic())
        loop = build([(0, 'a', 1), (1, 'b', 0)])
        self.assertFalse(loop.is_acyclic())
        self.assertIn(loop.find_cycle(), {0, 1})
        self.assertEqual(build([(0, 'a', 0)]).find_cycle(), 0)
        # Cycles that cannot be reached from the start do not count
        unreachable = build([(1, 'a', 2), (2, 'b', 1)])
        self.assertTrue(unreachable.is_acyclic())

    def test_copy(self):
        f = build([(0, 'a', 1)], accepting=[1])
        g = copy.copy(f)
        g.add_edge(1, 'b', g.add_node())
        g.accepting.add(0)
        self.assertEqual(str(f), "0 a -> 1\n1.\n")
        self.assertEqual(f.arccount(), 1)
        self.assertEqual(g.arccount(), 2)


class TestPruning(unittest.TestCase):
    """Test removal of useless (dead-end, non-accepting) states"""
    def test_fixpoint(self):
        f = build([(0, 'a', 1), (1, 'b', 2), (0, 'c', 3)], accepting=[3])
        removed = f.leave_out_useless_states()
        self.assertEqual(removed, {1, 2})
        self.assertEqual(f.transitions, {0: {'c': 3}, 3: {}})

    def test_not_reachability_based(self):
        """An unreachable state with a live edge survives"""
        f = build([(0, 'a', 1), (2, 'b', 1)], accepting=[1])
        self.assertEqual(f.leave_out_useless_states(), set())
        self.assertIn(2, f.states)

    def test_looping_dead_end_removed(self):
        f = build([(0, 'a', 1), (0, 'b', 2)], accepting=[2], looping=[1])
        f.leave_out_useless_states()
        self.assertEqual(f.states, {0, 2})
        self.assertEqual(f.looping, set())

    def test_idempotent(self):
        f = build([(0, 'a', 1), (1, 'b', 2), (0, 'c', 3), (3, 'd', 4), (4, 'e', 5)],
                  accepting=[2], looping=[3])
        f.leave_out_useless_states()
        once = f.todict()
        self.assertEqual(f.leave_out_useless_states(), set())
        self.assertEqual(f.todict(), once)

    def test_start_state_removed(self):
        """A dead start state is pruned like any other and leaves the empty automaton"""
        f = FSA()
        self.assertEqual(f.leave_out_useless_states(), {0})
        self.assertTrue(f.is_empty())
        self.assertEqual(len(f), 0)
        self.assertFalse(f.accepts([]))
        self.assertEqual(list(f.words()), [])
        self.assertEqual(str(f), "")
        self.assertTrue(f.is_acyclic())

    def test_accepting_start_kept(self):
        f = FSA()
        f.accepting.add(0)
        self.assertEqual(f.leave_out_useless_states(), set())
        self.assertFalse(f.is_empty())
        self.assertTrue(f.accepts([]))


class TestPrinter(unittest.TestCase):
    """Test the traversal dump"""
    def test_flags(self):
        f = FSA.from_sequences([['a', 'b'], ['a', 'c']], looping_final=True)
        self.assertEqual(str(f), "0 a -> 1\n1 b -> 2 c -> 3\n2.$\n3.$\n")
        f.accepting.add(0)
        f.looping.add(0)
        self.assertTrue(str(f).startswith("0.$ a -> 1\n"))

    def test_shared_target_printed_once(self):
        f = build([(0, 'b', 1), (0, 'a', 1), (1, 'c', 2)], accepting=[2])
        self.assertEqual(str(f), "0 a -> 1 b -> 1\n1 c -> 2\n2.\n")

    def test_unreachable_not_printed(self):
        f = build([(0, 'a', 1), (2, 'b', 1)], accepting=[1])
        self.assertEqual(str(f), "0 a -> 1\n1.\n")

    def test_labels(self):
        f = build([(0, '', 1), (0, WILD, 2), (2, 7, 3)])
        self.assertEqual(str(f), "0 '' -> 1 . -> 2\n1\n2 7 -> 3\n3\n")


class TestLabel(unittest.TestCase):
    """Test label helpers"""
    def test_wild(self):
        self.assertEqual(WILD, '.')
        self.assertTrue(is_wild('.'))
        self.assertFalse(is_wild('a'))
        self.assertFalse(is_wild(0))

    def test_is_label(self):
        self.assertTrue(is_label('ny'))
        self.assertTrue(is_label(3))
        self.assertFalse(is_label(['n', 'y']))

    def test_label_str(self):
        self.assertEqual(label_str('sz'), 'sz')
        self.assertEqual(label_str(''), "''")
        self.assertEqual(label_str(12), '12')

    def test_sorted_labels(self):
        self.assertEqual(util.sorted_labels({'b', 'a', 'c'}), ['a', 'b', 'c'])
        self.assertEqual(util.sorted_labels({'a', 2, 1}), [1, 2, 'a'])


class TestUtil(unittest.TestCase):
    """Test serialization and rendering."""
    fsa = build([(0, 'a', 1), (1, 'b', 2), (0, 'c', 3)], accepting=[2, 3], looping=[0, 3])

    def test_todict(self):
        d = self.fsa.todict()
        self.assertEqual(d["transitions"], [[0, 'a', 1], [0, 'c', 3], [1, 'b', 2]])
        self.assertEqual(d["accepting"], [2, 3])
        self.assertEqual(d["looping"], [0, 3])
        g = FSA.fromdict(json.loads(json.dumps(d)))
        self.assertEqual(str(g), str(self.fsa))
        self.assertEqual(g.largest_state, self.fsa.largest_state)

    def test_fromdict_dangling(self):
        d = self.fsa.todict()
        d["transitions"].append([3, 'x', 9])
        with self.assertRaises(ValueError):
            FSA.fromdict(d)

    def test_save_load(self):
        with TemporaryDirectory() as tempdir:
            path = os.path.join(tempdir, "test")
            self.fsa.save(path)
            self.assertTrue(os.path.exists(path + ".fsa"))
            g = FSA.load(path)
            self.assertEqual(str(g), str(self.fsa))
            self.assertEqual(g.looping, {0, 3})
            with self.assertRaises(IOError):
                FSA.load(os.path.join(tempdir, "missing"))

    @unittest.skipUnless(util.check_graphviz_installed(), "Graphviz executable not found")
    def test_view(self):
        g = self.fsa.view()
        self.assertIn("doublecircle", g.source)
        self.assertIn("dashed", g.source)
        self.assertIn("{a,b,c}", g.source)


if __name__ == "__main__":
    unittest.main()
