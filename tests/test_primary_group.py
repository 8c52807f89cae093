import struct
import unittest

from adgroups.exceptions import PreconditionError
from adgroups.membership import MembershipResolver
from adgroups.primary_group import PrimaryGroupResolver
from adgroups.utils import parse_sid
from fake_directory import FakeDirectory, make_sid


class TestPrimaryGroupResolver(unittest.TestCase):
    """Tests for primary group resolution from primaryGroupID."""

    def setUp(self):
        self.directory = FakeDirectory()
        d = self.directory
        self.domain_admins = d.add_group('Domain Admins', rid=512)
        self.domain_users = d.add_group('Domain Users', rid=513)
        d.add_user('alice', rid=1105, primary_group_id=513)
        d.add_user('root', rid=500, primary_group_id=512)
        d.add_user('orphan', rid=1200, primary_group_id=1999)
        self.user_sid = make_sid(1105)
        self.resolver = PrimaryGroupResolver(MembershipResolver(d))

    def test_fixture_sid_is_28_bytes(self):
        self.assertEqual(len(self.user_sid), 28)

    def test_group_sid_filter_replaces_rid(self):
        search_filter = self.resolver.group_sid_filter(512, self.user_sid)

        expected_sid = self.user_sid[:-4] + struct.pack('<I', 512)
        self.assertEqual(expected_sid[-4:], b'\x00\x02\x00\x00')
        self.assertEqual(search_filter, f'(objectSid={parse_sid(expected_sid)})')
        self.assertTrue(search_filter.endswith('-512)'))

    def test_filter_matches_group_object_sid(self):
        group_sid = self.directory.entries[self.domain_admins.lower()]['objectSid'][0]

        search_filter = self.resolver.group_sid_filter(512, self.user_sid)

        self.assertEqual(search_filter, f'(objectSid={parse_sid(group_sid)})')

    def test_get_primary_group(self):
        self.assertEqual(self.resolver.get_primary_group(512, self.user_sid), self.domain_admins)
        self.assertEqual(self.resolver.resolve_primary_group('513', self.user_sid), self.domain_users)
        self.assertEqual(len(self.directory.searches), 2)

    def test_unknown_rid_is_none(self):
        self.assertIsNone(self.resolver.get_primary_group(4242, self.user_sid))

    def test_missing_inputs_raise_before_search(self):
        with self.assertRaises(PreconditionError):
            self.resolver.get_primary_group(None, self.user_sid)
        with self.assertRaises(PreconditionError):
            self.resolver.get_primary_group('', self.user_sid)
        with self.assertRaises(PreconditionError):
            self.resolver.get_primary_group(513, b'')
        with self.assertRaises(PreconditionError):
            self.resolver.get_primary_group(513, None)
        self.assertEqual(self.directory.searches, [])

    def test_malformed_sid_is_none(self):
        with self.assertLogs('adgroups.primary_group', level='WARNING'):
            self.assertIsNone(self.resolver.get_primary_group(513, b'\x01\x00\x00\x00'))
        self.assertEqual(self.directory.searches, [])

    def test_truncated_sub_authorities_are_none(self):
        # claims five sub-authorities, carries one
        truncated = b'\x01\x05\x00\x00\x00\x00\x00\x05\x15\x00\x00\x00'

        with self.assertRaises(ValueError):
            self.resolver.group_sid_filter(513, truncated)
        with self.assertLogs('adgroups.primary_group', level='WARNING'):
            self.assertIsNone(self.resolver.get_primary_group(513, truncated))
        self.assertEqual(self.directory.searches, [])

    def test_for_user(self):
        self.assertEqual(self.resolver.for_user('alice'), self.domain_users)
        self.assertEqual(self.resolver.for_user('root'), self.domain_admins)

    def test_for_user_without_matching_group(self):
        self.assertIsNone(self.resolver.for_user('orphan'))

    def test_for_missing_user(self):
        self.assertIsNone(self.resolver.for_user('ghost'))


if __name__ == '__main__':
    unittest.main()
