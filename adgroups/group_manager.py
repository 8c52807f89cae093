"""Group membership changes and group renames."""

import logging
from typing import List, Optional
from ldap3.utils.dn import escape_rdn
from adgroups.exceptions import PreconditionError
from adgroups.membership import MembershipResolver


class GroupManager:
    """Add and remove member edges, and rename or move groups."""

    def __init__(self, resolver: MembershipResolver):
        """
        Initialize group manager.

        Args:
            resolver: Membership resolver used to look up both ends of an edge
        """
        self.resolver = resolver
        self.ldap = resolver.ldap
        self.logger = logging.getLogger(__name__)

    def add_group(self, parent: str, child: str) -> bool:
        """Make child a member of parent. Both are group names or DNs."""
        parent_dn, child_dn = self._group_pair(parent, child)
        if not parent_dn or not child_dn:
            return False
        return self.ldap.modify_add_attribute(parent_dn, 'member', child_dn)

    def remove_group(self, parent: str, child: str) -> bool:
        """Remove child from parent's members."""
        parent_dn, child_dn = self._group_pair(parent, child)
        if not parent_dn or not child_dn:
            return False
        return self.ldap.modify_delete_attribute(parent_dn, 'member', child_dn)

    def add_user(self, group: str, user: str, is_guid: bool = False) -> bool:
        """
        Add a user to a group.

        Args:
            group: Group name or DN
            user: sAMAccountName, or objectGUID string when is_guid is set
            is_guid: Treat user as an objectGUID

        Returns:
            True if the directory accepted the change
        """
        group_dn, user_dn = self._group_and_user(group, user, is_guid)
        if not group_dn or not user_dn:
            return False
        return self.ldap.modify_add_attribute(group_dn, 'member', user_dn)

    def remove_user(self, group: str, user: str, is_guid: bool = False) -> bool:
        """Remove a user from a group."""
        group_dn, user_dn = self._group_and_user(group, user, is_guid)
        if not group_dn or not user_dn:
            return False
        return self.ldap.modify_delete_attribute(group_dn, 'member', user_dn)

    def add_contact(self, group: str, contact_dn: str) -> bool:
        """Add a contact, given by DN, to a group."""
        group_dn = self._group_dn(group)
        if not group_dn:
            return False
        return self.ldap.modify_add_attribute(group_dn, 'member', contact_dn)

    def remove_contact(self, group: str, contact_dn: str) -> bool:
        """Remove a contact, given by DN, from a group."""
        group_dn = self._group_dn(group)
        if not group_dn:
            return False
        return self.ldap.modify_delete_attribute(group_dn, 'member', contact_dn)

    def rename(self, group: str, new_name: str, container: List[str]) -> bool:
        """
        Rename a group and move it to a container.

        Args:
            group: Group name or DN
            new_name: New common name (unescaped)
            container: OU path from the top, e.g. ['Corp', 'Groups'] for
                OU=Groups,OU=Corp,<base DN>

        Returns:
            True if the directory accepted the change

        Raises:
            PreconditionError: If new_name is empty
        """
        if not new_name:
            raise PreconditionError('Name')

        group_dn = self._group_dn(group)
        if not group_dn:
            return False

        new_rdn = f'CN={escape_rdn(new_name)}'
        ous = ','.join(f'OU={escape_rdn(ou)}' for ou in reversed(container))
        new_parent = f'{ous},{self.ldap.base_dn}' if ous else self.ldap.base_dn

        return self.ldap.rename(group_dn, new_rdn, new_parent, True)

    def _group_dn(self, group: str) -> Optional[str]:
        group_dn = self.resolver.dn(group)
        if not group_dn:
            self.logger.warning(f"Group not found: {group}")
        return group_dn

    def _group_pair(self, parent: str, child: str):
        parent_dn = self._group_dn(parent)
        if not parent_dn:
            return None, None
        return parent_dn, self._group_dn(child)

    def _group_and_user(self, group: str, user: str, is_guid: bool):
        group_dn = self._group_dn(group)
        if not group_dn:
            return None, None

        user_dn = self.resolver.user_dn(user, is_guid=is_guid)
        if not user_dn:
            self.logger.warning(f"User not found: {user}")
        return group_dn, user_dn
