"""Primary group resolution.

Active Directory does not list a user's primary group in memberOf, nor the
user in the group's member attribute. The user only carries the group's RID
in primaryGroupID. Since the group lives in the user's domain, its SID is
the user's SID with the last sub-authority replaced by that RID.
"""

import logging
from typing import Optional, Union
from adgroups.exceptions import PreconditionError
from adgroups.membership import MembershipResolver
from adgroups.utils import get_value, parse_sid, replace_rid
import config


class PrimaryGroupResolver:
    """Find the group referenced by a user's primaryGroupID."""

    def __init__(self, resolver: MembershipResolver):
        self.resolver = resolver
        self.ldap = resolver.ldap
        self.logger = logging.getLogger(__name__)

    def group_sid_filter(self, group_id: Union[int, str], user_sid: bytes) -> str:
        """
        Build the objectSid filter for a user's primary group.

        Args:
            group_id: Primary group RID (e.g. 513)
            user_sid: The user's binary objectSid

        Returns:
            Filter such as (objectSid=S-1-5-21-...-513)

        Raises:
            PreconditionError: If either argument is empty
            ValueError: If the SID is malformed or the RID is not a number
        """
        self._validate(group_id, user_sid)

        group_sid = parse_sid(replace_rid(user_sid, int(group_id)))
        if not group_sid:
            raise ValueError(f"SID sub-authorities are truncated ({len(user_sid)} bytes)")
        return f"(objectSid={group_sid})"

    def get_primary_group(self, group_id: Union[int, str], user_sid: bytes) -> Optional[str]:
        """
        Get the DN of a user's primary group.

        Args:
            group_id: Primary group RID (the user's primaryGroupID)
            user_sid: The user's binary objectSid

        Returns:
            Group DN, or None if no group has the reconstructed SID

        Raises:
            PreconditionError: If either argument is empty
        """
        self._validate(group_id, user_sid)

        try:
            search_filter = self.group_sid_filter(group_id, user_sid)
        except ValueError as e:
            self.logger.warning(f"Cannot build primary group SID: {e}")
            return None

        results = self.ldap.search(
            search_filter=search_filter,
            attributes=['sAMAccountName', 'distinguishedName']
        )

        if not results:
            self.logger.info(f"No group matches {search_filter}")
            return None

        return get_value(results[0], 'distinguishedName')

    resolve_primary_group = get_primary_group

    def for_user(self, username: str, is_guid: bool = False) -> Optional[str]:
        """
        Get the DN of a user's primary group from the user's account name.

        Returns:
            Group DN, or None if the user or the group does not exist
        """
        user = self.resolver.find_user(username, config.USER_ATTRIBUTES, is_guid=is_guid)
        if user is None:
            self.logger.info(f"User not found: {username}")
            return None

        group_id = get_value(user, 'primaryGroupID')
        user_sid = get_value(user, 'objectSid', raw=True)
        if not group_id or not user_sid:
            self.logger.warning(f"{username} has no primaryGroupID or objectSid")
            return None

        return self.get_primary_group(group_id, user_sid)

    @staticmethod
    def _validate(group_id, user_sid):
        if group_id is None or group_id == '':
            raise PreconditionError('Group ID')
        if not user_sid:
            raise PreconditionError('User ID')
