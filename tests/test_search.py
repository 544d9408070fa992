"""Tests for the closest commit search."""

import unittest
from unittest.mock import MagicMock

from git_bisect_ci.errors import BisectCIError
from git_bisect_ci.graph import Commit, CommitGraph, build_commit_graph
from git_bisect_ci.history import read_history
from git_bisect_ci.oid import Oid
from git_bisect_ci.search import StartNotInGraphError, closest_commits


def oids(*texts):
    return {Oid.parse(t) for t in texts}


def always(oid):
    return True


def never(oid):
    return False


class TestClosestCommits(unittest.TestCase):
    """Tests for closest_commits."""

    def setUp(self):
        # 01 - 02 - 03 - 04 - 05, with 01 the bad tip
        self.line = build_commit_graph(['01 02', '02 03', '03 04', '04 05', '05'])

    def test_nearest_in_graph(self):
        """Parent and child edges both count towards distance."""
        graph = build_commit_graph(['AA BB', 'BB CC', 'CC DD EE', 'EE FF', 'FF 00'])
        history = read_history(['AA 0\n', 'FF 0\n', '00 0\n'])

        actual = closest_commits(Oid.parse('CC'), graph, history, always)

        self.assertEqual(actual, oids('FF'))

    def test_skipped_only_commit(self):
        """An ineligible target is never returned."""
        oid = Oid.parse('AA')
        graph = CommitGraph(commits={oid: Commit()})

        self.assertEqual(closest_commits(oid, graph, {oid}, never), set())

    def test_start_is_target(self):
        """The start commit itself is at distance zero."""
        start = Oid.parse('03')
        self.assertEqual(
            closest_commits(start, self.line, oids('03', '04'), always),
            oids('03'),
        )

    def test_ties_are_all_returned(self):
        """Targets at the same distance are returned together."""
        actual = closest_commits(Oid.parse('03'), self.line, oids('02', '04', '05'), always)
        self.assertEqual(actual, oids('02', '04'))

    def test_bad_is_excluded(self):
        """The bad tip is never a match, even when it is nearest."""
        actual = closest_commits(Oid.parse('02'), self.line, oids('01', '05'), always)
        self.assertEqual(actual, oids('05'))

    def test_bad_only_target(self):
        """With only the bad tip evaluated, nothing is found."""
        actual = closest_commits(Oid.parse('03'), self.line, oids('01'), always)
        self.assertEqual(actual, set())

    def test_targets_not_modified(self):
        """The caller's target set is left alone."""
        targets = oids('01', '05')
        closest_commits(Oid.parse('03'), self.line, targets, always)
        self.assertEqual(targets, oids('01', '05'))

    def test_skip_continues_outward(self):
        """An ineligible nearest target makes the search go further."""
        skipped = Oid.parse('04')
        actual = closest_commits(
            Oid.parse('03'), self.line, oids('04', '05'), lambda oid: oid != skipped
        )
        self.assertEqual(actual, oids('05'))

    def test_partial_ring(self):
        """Only the eligible members of a ring are returned."""
        skipped = Oid.parse('02')
        actual = closest_commits(
            Oid.parse('03'), self.line, oids('02', '04'), lambda oid: oid != skipped
        )
        self.assertEqual(actual, oids('04'))

    def test_no_targets(self):
        """An empty history finds nothing."""
        self.assertEqual(closest_commits(Oid.parse('03'), self.line, set(), always), set())

    def test_unreachable_target(self):
        """Targets in another component are not found."""
        graph = build_commit_graph(['aa bb', 'bb', 'cc'])
        self.assertEqual(closest_commits(Oid.parse('bb'), graph, oids('cc'), always), set())

    def test_predicate_only_called_on_targets(self):
        """The predicate is consulted for ring members that are targets."""
        eligible = MagicMock(return_value=True)
        closest_commits(Oid.parse('03'), self.line, oids('05'), eligible)
        eligible.assert_called_once_with(Oid.parse('05'))

    def test_predicate_called_in_sorted_order(self):
        """Targets of a ring are checked in oid order."""
        eligible = MagicMock(return_value=True)
        closest_commits(Oid.parse('03'), self.line, oids('04', '02'), eligible)
        self.assertEqual(
            [c.args[0] for c in eligible.call_args_list],
            [Oid.parse('02'), Oid.parse('04')],
        )

    def test_predicate_error_propagates(self):
        """A failing predicate aborts the search."""
        eligible = MagicMock(side_effect=BisectCIError('git exploded'))
        with self.assertRaises(BisectCIError):
            closest_commits(Oid.parse('03'), self.line, oids('04'), eligible)

    def test_start_not_in_graph(self):
        """Starting outside the graph is a usage error."""
        with self.assertRaises(StartNotInGraphError) as cm:
            closest_commits(Oid.parse('99'), self.line, oids('04'), always)
        self.assertIn('99', str(cm.exception))

    def test_cycle_terminates(self):
        """A diamond, seen undirected, still terminates."""
        graph = build_commit_graph(['aa bb cc', 'bb dd', 'cc dd', 'dd'])
        self.assertEqual(closest_commits(Oid.parse('aa'), graph, oids('ee'), always), set())

    def test_deterministic(self):
        """Repeated searches give the same answer."""
        targets = oids('02', '04', '05')
        first = closest_commits(Oid.parse('03'), self.line, targets, always)
        for _ in range(5):
            self.assertEqual(closest_commits(Oid.parse('03'), self.line, targets, always), first)


if __name__ == '__main__':
    unittest.main()
