"""Configuration settings for the AD group membership resolver."""

# LDAP Search Filters
LDAP_FILTERS = {
    'group': '(objectCategory=group)',
    'person_or_contact': '(|(objectCategory=person)(objectClass=contact))',
    'member_user': '(&(objectClass=user)(objectClass=person))',
    'user': '(&(objectCategory=person)(objectClass=user))',
    'principal': '(|(objectCategory=group)(objectCategory=person))',
}

# sAMAccountType values used for group listings
SAM_ACCOUNT_TYPES = {
    'security_global_group': 268435456,
    'distribution_group': 268435457,
}

# Attributes fetched when classifying a member DN
GROUP_ATTRIBUTES = [
    'sAMAccountName', 'distinguishedName', 'objectClass', 'member',
]

# Attributes fetched for person members of a group
MEMBER_ATTRIBUTES = [
    'sAMAccountName', 'distinguishedName', 'displayName', 'mail', 'objectClass',
]

# Attributes fetched to resolve a user's primary group
USER_ATTRIBUTES = [
    'sAMAccountName', 'distinguishedName', 'objectSid', 'primaryGroupID',
]

# LDAP Connection Settings
LDAP_SETTINGS = {
    'page_size': 1000,       # LDAP paging size
    'use_ssl': False,        # Use LDAPS by default
}

# Group traversal defaults
GROUP_SETTINGS = {
    'recursive_groups': True,    # Default for in_group() when recursive is not given
}
