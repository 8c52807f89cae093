"""LDAP connection manager using impacket."""

import logging
from typing import Any, Dict, List, Optional
from impacket.ldap import ldap, ldapasn1
import config
from adgroups.exceptions import DirectoryError
from adgroups.utils import domain_to_base_dn

SEARCH_SCOPES = {
    'base': 'baseObject',
    'one': 'singleLevel',
    'subtree': 'wholeSubtree',
}


class LDAPConnector:
    """Manages LDAP connections to Active Directory."""

    def __init__(self, domain: str, username: str, password: str,
                 dc_ip: str, use_kerberos: bool = False, lmhash: str = '', nthash: str = '',
                 use_ssl: Optional[bool] = None):
        """
        Initialize LDAP connector.

        Args:
            domain: Target domain name
            username: Username for authentication
            password: Password for authentication
            dc_ip: Domain controller IP address
            use_kerberos: Use Kerberos authentication
            lmhash: LM hash for pass-the-hash
            nthash: NT hash for pass-the-hash
            use_ssl: Connect over LDAPS (defaults to config.LDAP_SETTINGS)
        """
        self.domain = domain
        self.username = username
        self.password = password
        self.dc_ip = dc_ip
        self.use_kerberos = use_kerberos
        self.lmhash = lmhash
        self.nthash = nthash
        self.use_ssl = config.LDAP_SETTINGS['use_ssl'] if use_ssl is None else use_ssl
        self.ldap_conn = None
        self.base_dn = domain_to_base_dn(domain)

        self.logger = logging.getLogger(__name__)

    def connect(self) -> bool:
        """
        Establish LDAP connection.

        Returns:
            True if successful, False otherwise
        """
        try:
            target = self.domain if self.use_kerberos else self.dc_ip
            scheme = 'ldaps' if self.use_ssl else 'ldap'

            self.ldap_conn = ldap.LDAPConnection(f'{scheme}://{target}', self.base_dn, self.dc_ip)

            if self.use_kerberos:
                self.ldap_conn.kerberosLogin(
                    user=self.username,
                    password=self.password,
                    domain=self.domain,
                    lmhash=self.lmhash,
                    nthash=self.nthash,
                    kdcHost=self.dc_ip
                )
            elif self.lmhash or self.nthash:
                # Pass-the-hash
                self.ldap_conn.login(
                    user=self.username,
                    password='',
                    domain=self.domain,
                    lmhash=self.lmhash,
                    nthash=self.nthash
                )
            else:
                self.ldap_conn.login(
                    user=self.username,
                    password=self.password,
                    domain=self.domain
                )

            self.logger.info(f"Successfully connected to {self.dc_ip} ({self.base_dn})")
            return True

        except Exception as e:
            self.logger.error(f"Failed to connect to LDAP: {e}")
            self.ldap_conn = None
            return False

    def search(self, search_filter: str, attributes: List[str],
               search_base: Optional[str] = None, scope: str = 'subtree') -> List[Dict[str, Any]]:
        """
        Perform LDAP search with automatic paging.

        Args:
            search_filter: LDAP filter string
            attributes: List of attributes to retrieve
            search_base: Custom search base (uses domain base DN if None)
            scope: 'base', 'one' or 'subtree'

        Returns:
            List of result dictionaries (attribute name -> list of raw values)

        Raises:
            DirectoryError: If the connection is not established or the search fails
        """
        if not self.ldap_conn:
            raise DirectoryError("LDAP connection not established")

        search_base = search_base or self.base_dn
        self.logger.debug(f"Search {search_filter} under {search_base} ({scope})")

        search_control = ldapasn1.SimplePagedResultsControl(
            criticality=False,
            size=config.LDAP_SETTINGS['page_size']
        )

        try:
            resp = self.ldap_conn.search(
                searchBase=search_base,
                scope=ldapasn1.Scope(SEARCH_SCOPES[scope]),
                searchFilter=search_filter,
                attributes=attributes,
                searchControls=[search_control]
            )
        except ldap.LDAPSearchError as e:
            # noSuchObject: the search base (a member DN) no longer exists
            if 'noSuchObject' in str(e):
                self.logger.debug(f"No such object: {search_base}")
                return []
            self.logger.error(f"LDAP search failed: {e}")
            raise DirectoryError(f"Search failed for {search_filter}: {e}") from e
        except Exception as e:
            self.logger.error(f"LDAP search failed: {e}")
            raise DirectoryError(f"Search failed for {search_filter}: {e}") from e

        results = []
        for item in resp:
            if isinstance(item, ldapasn1.SearchResultEntry):
                entry = {'distinguishedName': [str(item['objectName']).encode('utf-8')]}
                for attr in item['attributes']:
                    attr_name = str(attr['type'])
                    entry[attr_name] = [bytes(val) for val in attr['vals']]
                results.append(entry)

        self.logger.debug(f"Search returned {len(results)} entries")
        return results

    def modify_add_attribute(self, dn: str, attribute: str, value: str) -> bool:
        """Add a single value to a multi-valued attribute."""
        self.logger.info(f"Adding {attribute}={value} to {dn}")
        return self._apply_change(dn, self._require_connection().modify,
                                  dn, {attribute: [(ldap.MODIFY_ADD, [value])]})

    def modify_delete_attribute(self, dn: str, attribute: str, value: str) -> bool:
        """Remove a single value from a multi-valued attribute."""
        self.logger.info(f"Removing {attribute}={value} from {dn}")
        return self._apply_change(dn, self._require_connection().modify,
                                  dn, {attribute: [(ldap.MODIFY_DELETE, [value])]})

    def rename(self, dn: str, new_rdn: str, new_parent: str, delete_old: bool = True) -> bool:
        """
        Rename and/or move an entry.

        Args:
            dn: Current distinguished name
            new_rdn: New relative name, already escaped (e.g. CN=Sales\\, EU)
            new_parent: DN of the new parent container
            delete_old: Delete the old RDN value

        Returns:
            True if the server accepted the change
        """
        self.logger.info(f"Renaming {dn} to {new_rdn},{new_parent}")
        return self._apply_change(dn, self._require_connection().modify_dn,
                                  dn, new_rdn, deleteoldrdn=delete_old, newSuperior=new_parent)

    def close(self):
        """Close LDAP connection."""
        if self.ldap_conn:
            try:
                self.ldap_conn.close()
                self.logger.info("LDAP connection closed")
            except Exception as e:
                self.logger.error(f"Error closing connection: {e}")
            finally:
                self.ldap_conn = None

    def _require_connection(self):
        if not self.ldap_conn:
            raise DirectoryError("LDAP connection not established")
        return self.ldap_conn

    def _apply_change(self, dn: str, operation, *args, **kwargs) -> bool:
        try:
            return bool(operation(*args, **kwargs))
        except ldap.LDAPSessionError as e:
            # A result code means the server answered and refused the change
            if e.getErrorCode():
                self.logger.error(f"Change rejected for {dn}: {e}")
                return False
            self.logger.error(f"LDAP change failed for {dn}: {e}")
            raise DirectoryError(f"Change failed for {dn}: {e}") from e
        except Exception as e:
            self.logger.error(f"LDAP change failed for {dn}: {e}")
            raise DirectoryError(f"Change failed for {dn}: {e}") from e
