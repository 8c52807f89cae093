"""One-level group membership lookups."""

import logging
import uuid
from typing import Any, Dict, List, Optional, Tuple
from ldap3.utils.conv import escape_bytes, escape_filter_chars
from adgroups.exceptions import PreconditionError
from adgroups.results import Classification
from adgroups.utils import (
    get_ranged_values, get_value, is_dn
)
import config


class MembershipResolver:
    """Resolve groups, their direct members and the kind of a member entry."""

    def __init__(self, ldap_conn):
        """
        Initialize membership resolver.

        Args:
            ldap_conn: Active LDAP connection (anything exposing search())
        """
        self.ldap = ldap_conn
        self.logger = logging.getLogger(__name__)

    def find(self, group_name: str, attributes: Optional[List[str]] = None) -> Optional[Dict[str, Any]]:
        """
        Find a group by name or distinguished name.

        Names are matched with ambiguous name resolution; when several groups
        match, an exact (case-sensitive) sAMAccountName or cn match wins.

        Args:
            group_name: Group name or DN
            attributes: Attributes to retrieve

        Returns:
            The group entry, or None if no group matches
        """
        self._require('Group', group_name)

        escaped = escape_filter_chars(group_name)
        if is_dn(group_name):
            search_filter = f"(&{config.LDAP_FILTERS['group']}(distinguishedName={escaped}))"
        else:
            search_filter = f"(&{config.LDAP_FILTERS['group']}(anr={escaped}))"

        results = self.ldap.search(
            search_filter=search_filter,
            attributes=self._with_identity(attributes)
        )
        return self._best_match(results, group_name)

    info = find

    def dn(self, group_name: str) -> Optional[str]:
        """Get a group's distinguished name, or None if it does not exist."""
        entry = self.find(group_name, ['distinguishedName'])
        return get_value(entry, 'distinguishedName') if entry else None

    def lookup_members(self, group: str) -> Optional[List[str]]:
        """
        Get the direct member DNs of a group.

        Args:
            group: Group name or DN

        Returns:
            Member DNs ([] for a group without members), or None if the
            group does not exist
        """
        entry = self.find(group, ['member'])
        if entry is None:
            self.logger.info(f"Group not found: {group}")
            return None

        return self.member_dns(entry)

    def member_dns(self, entry: Dict[str, Any]) -> List[str]:
        """
        Get every member DN of a group entry, fetching the remaining ranges
        when the directory returned the member attribute in slices.

        Args:
            entry: Group entry holding member (or member;range=...)

        Returns:
            All member DNs
        """
        members, next_start = get_ranged_values(entry, 'member')
        group_dn = get_value(entry, 'distinguishedName')

        while next_start is not None:
            attribute = f"member;range={next_start}-*"
            self.logger.debug(f"Fetching {attribute} of {group_dn}")
            results = self.ldap.search(
                search_filter=config.LDAP_FILTERS['group'],
                attributes=[attribute],
                search_base=group_dn,
                scope='base'
            )
            if not results:
                self.logger.warning(f"Member range {attribute} of {group_dn} returned nothing")
                break

            values, next_start = get_ranged_values(results[0], 'member')
            if not values:
                break
            members.extend(values)

        return members

    def resolve(self, identifier: str) -> Tuple[Classification, Optional[Dict[str, Any]]]:
        """
        Classify a DN and return the entry it resolved to.

        The group lookup fetches the member attribute as well, so a nested
        group can be expanded without a second query.

        Args:
            identifier: Distinguished name of a member

        Returns:
            (classification, entry) with entry None for UNKNOWN
        """
        self._require('Identifier', identifier)
        escaped = escape_filter_chars(identifier)

        results = self.ldap.search(
            search_filter=f"(&{config.LDAP_FILTERS['group']}(distinguishedName={escaped}))",
            attributes=config.GROUP_ATTRIBUTES
        )
        if results:
            return Classification.GROUP, results[0]

        results = self.ldap.search(
            search_filter=f"(&{config.LDAP_FILTERS['person_or_contact']}(distinguishedName={escaped}))",
            attributes=['distinguishedName', 'objectClass']
        )
        if results:
            return Classification.PERSON, results[0]

        return Classification.UNKNOWN, None

    def classify(self, identifier: str) -> Classification:
        """Classify a DN as a group, a person/contact, or unknown."""
        classification, _ = self.resolve(identifier)
        return classification

    def find_principal(self, identifier: str, attributes: Optional[List[str]] = None) -> Optional[Dict[str, Any]]:
        """
        Find a user or a group by name or DN.

        Args:
            identifier: Account name, display name or DN
            attributes: Attributes to retrieve

        Returns:
            The entry, or None if nothing matches
        """
        self._require('Identifier', identifier)

        escaped = escape_filter_chars(identifier)
        if is_dn(identifier):
            search_filter = f"(&{config.LDAP_FILTERS['principal']}(distinguishedName={escaped}))"
        else:
            search_filter = f"(&{config.LDAP_FILTERS['principal']}(anr={escaped}))"

        results = self.ldap.search(
            search_filter=search_filter,
            attributes=self._with_identity(attributes)
        )
        return self._best_match(results, identifier)

    def find_user(self, username: str, attributes: Optional[List[str]] = None,
                  is_guid: bool = False) -> Optional[Dict[str, Any]]:
        """
        Find a user by sAMAccountName or objectGUID.

        Args:
            username: sAMAccountName, or a GUID string when is_guid is set
            attributes: Attributes to retrieve
            is_guid: Treat username as an objectGUID

        Returns:
            The user entry, or None
        """
        self._require('User', username)

        if is_guid:
            guid = uuid.UUID(username.strip('{}'))
            condition = f"(objectGUID={escape_bytes(guid.bytes_le)})"
        else:
            condition = f"(sAMAccountName={escape_filter_chars(username)})"

        results = self.ldap.search(
            search_filter=f"(&{config.LDAP_FILTERS['user']}{condition})",
            attributes=self._with_identity(attributes)
        )
        return results[0] if results else None

    def user_dn(self, username: str, is_guid: bool = False) -> Optional[str]:
        """Get a user's distinguished name, or None if the user does not exist."""
        entry = self.find_user(username, ['distinguishedName'], is_guid=is_guid)
        return get_value(entry, 'distinguishedName') if entry else None

    def members(self, group: str, attributes: Optional[List[str]] = None) -> Optional[List[Dict[str, Any]]]:
        """
        Get the user entries that are direct members of a group.

        Members that are not users (nested groups, contacts, computers) and
        member DNs that no longer exist are left out.

        Args:
            group: Group name or DN
            attributes: Attributes to retrieve for each member

        Returns:
            List of user entries, or None if the group does not exist
        """
        member_list = self.lookup_members(group)
        if member_list is None:
            return None

        attributes = attributes or config.MEMBER_ATTRIBUTES
        members = []
        for member_dn in member_list:
            results = self.ldap.search(
                search_filter=config.LDAP_FILTERS['member_user'],
                attributes=attributes,
                search_base=member_dn,
                scope='base'
            )
            if results:
                members.append(results[0])

        self.logger.debug(f"{group}: {len(members)} of {len(member_list)} members are users")
        return members

    def search_groups(self, sam_account_type: Optional[int] = config.SAM_ACCOUNT_TYPES['security_global_group'],
                      attributes: Optional[List[str]] = None, sort: bool = True) -> List[Dict[str, Any]]:
        """
        List groups, optionally restricted to one sAMAccountType.

        Args:
            sam_account_type: sAMAccountType to match (None for every group)
            attributes: Attributes to retrieve
            sort: Sort by sAMAccountName

        Returns:
            List of group entries
        """
        search_filter = config.LDAP_FILTERS['group']
        if sam_account_type is not None:
            search_filter = f"(&{search_filter}(sAMAccountType={int(sam_account_type)}))"

        results = self.ldap.search(
            search_filter=search_filter,
            attributes=self._with_identity(attributes)
        )

        if sort:
            results.sort(key=lambda entry: (get_value(entry, 'sAMAccountName') or '').lower())

        self.logger.info(f"Found {len(results)} groups")
        return results

    def all_groups(self, attributes: Optional[List[str]] = None, sort: bool = True) -> List[Dict[str, Any]]:
        """List every group."""
        return self.search_groups(None, attributes, sort)

    def all_security(self, attributes: Optional[List[str]] = None, sort: bool = True) -> List[Dict[str, Any]]:
        """List global security groups."""
        return self.search_groups(config.SAM_ACCOUNT_TYPES['security_global_group'], attributes, sort)

    def all_distribution(self, attributes: Optional[List[str]] = None, sort: bool = True) -> List[Dict[str, Any]]:
        """List distribution groups."""
        return self.search_groups(config.SAM_ACCOUNT_TYPES['distribution_group'], attributes, sort)

    def _with_identity(self, attributes: Optional[List[str]]) -> List[str]:
        """Always fetch the attributes needed to identify an entry."""
        attributes = list(attributes or [])
        for name in ('distinguishedName', 'sAMAccountName', 'cn'):
            if name.lower() not in {a.lower() for a in attributes}:
                attributes.append(name)
        return attributes

    def _best_match(self, results: List[Dict[str, Any]], name: str) -> Optional[Dict[str, Any]]:
        if not results:
            return None

        for entry in results:
            if name in (get_value(entry, 'sAMAccountName'), get_value(entry, 'cn')):
                return entry
            if (get_value(entry, 'distinguishedName') or '').lower() == name.lower():
                return entry

        return results[0]

    @staticmethod
    def _require(name: str, value: Any):
        if value is None or value == '' or value == b'':
            raise PreconditionError(name)
