import sys
import unittest
from unittest.mock import patch

import ad_group_tool
from adgroups.exceptions import PreconditionError
from fake_directory import FakeDirectory, user_dn


class TestRunQueries(unittest.TestCase):
    """Tests for the CLI query dispatch, against the in-memory directory."""

    def setUp(self):
        self.directory = FakeDirectory()
        d = self.directory
        self.alice = d.add_user('alice', primary_group_id=513)
        self.domain_users = d.add_group('Domain Users', rid=513)
        self.inner = d.add_group('Inner')
        self.outer = d.add_group('Outer', members=[self.inner, self.alice])
        self.top = d.add_group('Top', members=[self.outer])
        d.entries[self.alice.lower()]['memberOf'] = [self.outer]
        d.entries[self.outer.lower()]['memberOf'] = [self.top]
        self.parser = ad_group_tool.build_parser()

    def _run(self, *query):
        args = self.parser.parse_args(['-d', 'example.com', '-u', 'admin', '-p', 'x',
                                       '-t', '192.0.2.10'] + list(query))
        return ad_group_tool.run_queries(args, self.directory)

    def test_in_group(self):
        results = self._run('--in-group', 'Top')

        self.assertEqual(results['in_group']['groups'], [self.outer, self.inner])

    def test_in_group_not_recursive(self):
        results = self._run('--in-group', 'Top', '--no-recursive')

        self.assertEqual(results['in_group']['groups'], [self.outer])

    def test_in_group_missing(self):
        self.assertIsNone(self._run('--in-group', 'Nowhere')['in_group'])

    def test_recursive_groups(self):
        results = self._run('--recursive-groups', 'alice', '--unique')

        self.assertEqual(results['recursive_groups'], ['Outer', 'Top'])

    def test_primary_group_members_and_classify(self):
        results = self._run('--primary-group', 'alice', '--members', 'Outer',
                            '--classify', user_dn('alice'))

        self.assertEqual(results['primary_group'], self.domain_users)
        self.assertEqual(results['members'], [self.alice])
        self.assertEqual(results['classification']['classification'], 'Person')


class TestMain(unittest.TestCase):
    """Tests for the CLI entry point error handling."""

    @patch('ad_group_tool.run_queries')
    @patch('ad_group_tool.LDAPConnector')
    def test_unexpected_error_is_logged_and_exits(self, mock_connector, mock_run):
        mock_connector.return_value.connect.return_value = True
        mock_run.side_effect = PreconditionError('Group')
        argv = ['ad-group-tool', '-d', 'example.com', '-u', 'admin', '-p', 'x',
                '-t', '192.0.2.10', '--in-group', 'Top']

        with patch.object(sys, 'argv', argv):
            with self.assertLogs('ad_group_tool', level='ERROR') as logs:
                with self.assertRaises(SystemExit) as ctx:
                    ad_group_tool.main()

        self.assertEqual(ctx.exception.code, 1)
        self.assertIn('Group cannot be empty', logs.output[-1])
        mock_connector.return_value.close.assert_called_once_with()


if __name__ == '__main__':
    unittest.main()
