"""Nested group expansion (groups in a group, and groups a principal belongs to)."""

import logging
from typing import List, Optional
from adgroups.exceptions import DirectoryError, PreconditionError
from adgroups.membership import MembershipResolver
from adgroups.results import Classification, ClosureResult
from adgroups.utils import get_value, get_values, nice_names


class NestedGroupExpander:
    """Walk the member/memberOf relation transitively."""

    def __init__(self, resolver: MembershipResolver, recursive: bool = True):
        """
        Initialize nested group expander.

        Args:
            resolver: Membership resolver used for every lookup
            recursive: Default for in_group() when recursive is not passed
        """
        self.resolver = resolver
        self.recursive = recursive
        self.logger = logging.getLogger(__name__)

    def in_group(self, group: str, recursive: Optional[bool] = None) -> Optional[ClosureResult]:
        """
        List the groups nested inside a group.

        Members are expanded depth-first from an explicit stack. A DN is
        expanded at most once per call, so cycles (A contains B contains A)
        and diamonds terminate. Person and contact members are left out;
        members that match no entry are left out and listed in skipped.

        Args:
            group: Group name or DN
            recursive: Descend into nested groups (defaults to self.recursive)

        Returns:
            ClosureResult (empty for a group without members), or None if
            the group does not exist

        Raises:
            DirectoryError: On a transport failure, with the groups found so
                far attached as error.partial
        """
        if recursive is None:
            recursive = self.recursive

        entry = self.resolver.find(group, ['member'])
        if entry is None:
            self.logger.info(f"Group not found: {group}")
            return None

        root_dn = get_value(entry, 'distinguishedName') or group
        result = ClosureResult(group=root_dn, recursive=recursive)
        visited = {root_dn.lower()}
        stack = list(reversed(self.resolver.member_dns(entry)))

        self.logger.info(f"Expanding {root_dn} (recursive={recursive})")

        try:
            while stack:
                member_dn = stack.pop()
                if member_dn.lower() in visited:
                    continue
                visited.add(member_dn.lower())

                classification, member = self.resolver.resolve(member_dn)

                if classification is Classification.UNKNOWN:
                    self.logger.warning(f"Skipping unresolvable member {member_dn} of {root_dn}")
                    result.skipped.append(member_dn)
                    continue

                if classification is not Classification.GROUP:
                    continue

                result.groups.append(get_value(member, 'distinguishedName') or member_dn)

                if recursive:
                    stack.extend(reversed(self.resolver.member_dns(member)))
        except DirectoryError as e:
            e.partial = result
            raise

        self.logger.info(f"{root_dn}: {len(result.groups)} nested groups, {len(result.skipped)} skipped")
        return result

    expand_downward = in_group

    def recursive_groups(self, identifier: str) -> List[str]:
        """
        List every group a user or group belongs to, directly or through nesting.

        Follows memberOf from a work stack, converting each group DN to its
        display name. Every chain of membership is reported, so a group
        reached along several paths can appear more than once; use
        recursive_groups_unique() for a deduplicated list.

        Args:
            identifier: User or group name, or DN

        Returns:
            Group names in the order they were found

        Raises:
            PreconditionError: If identifier is empty
            DirectoryError: On a transport failure, with the names found so
                far attached as error.partial
        """
        if not identifier:
            raise PreconditionError('Group')

        stack = [identifier]
        processed = set()
        groups = []
        start = True

        try:
            while stack:
                parent = stack.pop()
                processed.add(parent.lower())

                if start:
                    entry = self.resolver.find_principal(parent, ['memberOf'])
                    start = False
                else:
                    entry = self.resolver.find(parent, ['memberOf'])

                if entry is None:
                    self.logger.debug(f"No entry for {parent}")
                    continue

                names = nice_names(get_values(entry, 'memberOf'))
                groups.extend(names)

                for name in names:
                    if name.lower() not in processed:
                        stack.append(name)
        except DirectoryError as e:
            e.partial = groups
            raise

        self.logger.info(f"{identifier}: member of {len(groups)} groups (with repeats)")
        return groups

    expand_upward = recursive_groups

    def recursive_groups_unique(self, identifier: str) -> List[str]:
        """Same as recursive_groups() with repeats removed, first occurrence kept."""
        seen = set()
        unique = []
        for name in self.recursive_groups(identifier):
            if name.lower() not in seen:
                seen.add(name.lower())
                unique.append(name)
        return unique
