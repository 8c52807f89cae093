"""
AD Group Membership Resolver
Resolve nested group membership and primary groups in Active Directory
"""

import argparse
import logging
import sys

import config
from adgroups.exceptions import DirectoryError
from adgroups.ldap_connector import LDAPConnector
from adgroups.membership import MembershipResolver
from adgroups.nested_groups import NestedGroupExpander
from adgroups.primary_group import PrimaryGroupResolver
from adgroups.reporter import Reporter
from adgroups.utils import get_value


def setup_logging(verbose: bool = False):
    """Configure logging."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description='Active Directory Group Membership Resolver',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Groups nested inside a group
  python ad_group_tool.py -d example.com -u admin -p Password123 -t 192.168.1.10 --in-group "Domain Admins"

  # Every group a user belongs to, through nesting, without repeats
  python ad_group_tool.py -d example.com -u admin -p Password123 -t 192.168.1.10 --recursive-groups jdoe --unique

  # A user's primary group
  python ad_group_tool.py -d example.com -u admin --nthash <hash> -t 192.168.1.10 --primary-group jdoe
        """
    )

    # Connection arguments
    conn_group = parser.add_argument_group('Connection')
    conn_group.add_argument('-d', '--domain', required=True, help='Target domain (e.g., example.com)')
    conn_group.add_argument('-u', '--username', required=True, help='Username for authentication')
    conn_group.add_argument('-p', '--password', help='Password for authentication')
    conn_group.add_argument('-t', '--target', required=True, help='Domain controller IP address')
    conn_group.add_argument('--lmhash', default='', help='LM hash for pass-the-hash')
    conn_group.add_argument('--nthash', default='', help='NT hash for pass-the-hash')
    conn_group.add_argument('--kerberos', action='store_true', help='Use Kerberos authentication')
    conn_group.add_argument('--ssl', action='store_true', help='Connect over LDAPS')

    # Queries
    query_group = parser.add_argument_group('Queries')
    query_group.add_argument('--in-group', metavar='GROUP', help='List groups nested inside GROUP')
    query_group.add_argument('--no-recursive', action='store_true', help='Only list direct child groups')
    query_group.add_argument('--recursive-groups', metavar='ID', help='List every group ID belongs to')
    query_group.add_argument('--unique', action='store_true', help='Remove repeats from --recursive-groups')
    query_group.add_argument('--primary-group', metavar='USER', help="Resolve USER's primary group")
    query_group.add_argument('--members', metavar='GROUP', help='List user members of GROUP')
    query_group.add_argument('--classify', metavar='DN', help='Classify DN as group, person or unknown')

    # Output options
    output_group = parser.add_argument_group('Output Options')
    output_group.add_argument('--output-json', help='Output JSON report to file')
    output_group.add_argument('--quiet', action='store_true', help='Suppress console output')

    parser.add_argument('-v', '--verbose', action='store_true', help='Verbose output')

    return parser


def run_queries(args, ldap_conn) -> dict:
    """Run the selected queries and collect their results."""
    resolver = MembershipResolver(ldap_conn)
    recursive = config.GROUP_SETTINGS['recursive_groups'] and not args.no_recursive
    expander = NestedGroupExpander(resolver, recursive=recursive)
    results = {}

    if args.classify:
        results['classification'] = {
            'identifier': args.classify,
            'classification': resolver.classify(args.classify).value,
        }

    if args.in_group:
        closure = expander.in_group(args.in_group)
        results['in_group'] = closure.to_dict() if closure is not None else None

    if args.recursive_groups:
        if args.unique:
            results['recursive_groups'] = expander.recursive_groups_unique(args.recursive_groups)
        else:
            results['recursive_groups'] = expander.recursive_groups(args.recursive_groups)

    if args.primary_group:
        results['primary_group'] = PrimaryGroupResolver(resolver).for_user(args.primary_group)

    if args.members:
        members = resolver.members(args.members)
        if members is not None:
            members = [get_value(member, 'distinguishedName') for member in members]
        results['members'] = members

    return results


def main():
    parser = build_parser()
    args = parser.parse_args()

    setup_logging(args.verbose)
    logger = logging.getLogger(__name__)

    if not args.password and not args.nthash and not args.kerberos:
        parser.error("Either --password, --nthash or --kerberos is required")

    if not any([args.in_group, args.recursive_groups, args.primary_group,
                args.members, args.classify]):
        parser.error("Select at least one query")

    logger.info(f"Target Domain: {args.domain}")
    logger.info(f"Domain Controller: {args.target}")

    ldap_conn = LDAPConnector(
        domain=args.domain,
        username=args.username,
        password=args.password or '',
        dc_ip=args.target,
        use_kerberos=args.kerberos,
        lmhash=args.lmhash,
        nthash=args.nthash,
        use_ssl=args.ssl or None
    )

    if not ldap_conn.connect():
        logger.error("[!] Failed to establish LDAP connection")
        sys.exit(1)

    try:
        results = run_queries(args, ldap_conn)

        reporter = Reporter()
        if args.output_json:
            reporter.generate_json_report(results, args.output_json)
        if not args.quiet:
            reporter.generate_text_report(results)

    except KeyboardInterrupt:
        logger.warning("\n[!] Interrupted by user")
        sys.exit(1)
    except DirectoryError as e:
        logger.error(f"[!] Directory error: {e}")
        if e.partial:
            logger.error(f"[!] Partial result before the failure: {e.partial}")
        sys.exit(1)
    except Exception as e:
        logger.error(f"[!] Error during queries: {e}", exc_info=True)
        sys.exit(1)
    finally:
        ldap_conn.close()


if __name__ == '__main__':
    main()
