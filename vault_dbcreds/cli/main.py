"""CLI entrypoint for vault-dbcreds."""
import os
import sys
import argparse
import logging
from datetime import timedelta
from pathlib import Path

from .validators import validate_lease_id, validate_path_segment

VERSION = "0.1.0"

logger = logging.getLogger(__name__)


def _configure_logging(verbose: bool = False) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        stream=sys.stderr
    )


def _build_client(config):
    """Create a Vault client from config and the resolved token."""
    from vault_dbcreds.credentials.domains.token_source import resolve_vault_token
    from vault_dbcreds.credentials.domains.vault_client import VaultSecretClient

    token = resolve_vault_token(config)
    return VaultSecretClient.from_config(config, token)


def _renewal_policy(config):
    from vault_dbcreds.credentials.domains.renewal import RenewalWindow

    leases = config["leases"]
    return (
        RenewalWindow(leases["renewal_window"]),
        timedelta(seconds=leases["renewal_buffer_seconds"]),
    )


def _print_lease(lease, show_password: bool = False) -> None:
    print(f"Lease id:        {lease.id}")
    print(f"Role:            {lease.name}")
    print(f"Backend:         {lease.backend}")
    print(f"Username:        {lease.username}")
    print(f"Password:        {lease.password if show_password else '********'}")
    print(f"Lease renewable: {str(lease.renewable).lower()}")
    print(f"Lease duration:  {lease.duration}s")
    print(f"Lease started:   {lease.lease_started or '(unknown)'}")


def cmd_version(args):
    """Show version information."""
    print(f"vault-dbcreds {VERSION}")


def cmd_config_show(args):
    """Show current config file path."""
    from vault_dbcreds.credentials.domains.config_loader import default_config_path

    env_path = os.getenv("DBCREDS_CONFIG")

    if env_path:
        config_path = Path(env_path)
        if config_path.exists():
            print(f"Config path: {config_path}")
        else:
            print(f"Config path (from DBCREDS_CONFIG, but file not found): {config_path}")
        print("Source: environment")
    else:
        default_config = default_config_path()
        print(f"Config path: {default_config}")
        if default_config.exists():
            print("Source: default")
        else:
            print("Source: default (file not found)")


def cmd_creds_issue(args):
    """Issue new database credentials and store the lease."""
    from vault_dbcreds.credentials.domains.config_loader import load_config
    from vault_dbcreds.credentials.domains.lease_store import save_lease
    from vault_dbcreds.credentials.workflows.lease_operations import issue_credentials

    validate_path_segment("Backend", args.backend)
    validate_path_segment("Role name", args.role)

    config = load_config()
    client = _build_client(config)
    lease = issue_credentials(client, args.backend, args.role)
    save_lease(lease)

    if args.quiet:
        print(lease.id)
    else:
        _print_lease(lease, show_password=args.show_password)


def cmd_creds_list(args):
    """List stored leases."""
    from vault_dbcreds.credentials.domains.lease_store import list_leases

    leases = list_leases()
    if not leases:
        print("No stored leases")
        return

    for lease in leases:
        print(f"{lease.id}\t{lease.backend}\t{lease.name}\t{lease.lease_started or '(unknown)'}")


def cmd_creds_show(args):
    """Show a stored lease."""
    from vault_dbcreds.credentials.domains.lease_store import load_lease

    validate_lease_id(args.lease_id)
    _print_lease(load_lease(args.lease_id), show_password=args.show_password)


def cmd_creds_reconcile(args):
    """Reissue a stored lease if it is inside its renewal window."""
    from vault_dbcreds.credentials.domains.config_loader import load_config
    from vault_dbcreds.credentials.domains.lease_store import load_lease, remove_lease, save_lease
    from vault_dbcreds.credentials.workflows.lease_operations import LeaseIssueError, reconcile_lease

    validate_lease_id(args.lease_id)

    config = load_config()
    window, buffer = _renewal_policy(config)
    lease = load_lease(args.lease_id)
    client = _build_client(config)

    try:
        current = reconcile_lease(
            client,
            lease,
            window=window,
            buffer=buffer,
            revoke_previous=args.revoke_previous,
        )
    except LeaseIssueError as e:
        # the old lease is gone in Vault, drop its record too
        if e.revoked_lease_id:
            remove_lease(e.revoked_lease_id)
        raise

    if current is lease:
        # persists a cleared lease_started
        save_lease(lease)
        print(f"Lease '{lease.id}' unchanged")
        return

    remove_lease(lease.id)
    save_lease(current)
    print(f"Lease '{lease.id}' reissued as '{current.id}'")


def cmd_creds_revoke(args):
    """Revoke a lease and forget its stored record."""
    from vault_dbcreds.credentials.domains.config_loader import load_config
    from vault_dbcreds.credentials.domains.lease_store import remove_lease
    from vault_dbcreds.credentials.workflows.lease_operations import revoke_credentials

    validate_lease_id(args.lease_id)

    config = load_config()
    client = _build_client(config)
    revoke_credentials(client, args.lease_id)
    remove_lease(args.lease_id)
    print(f"Lease '{args.lease_id}' revoked")


def main():
    """Main CLI entrypoint.

    Exit codes:
        0 - Success
        1 - Runtime errors (configuration, authentication, Vault failures, etc.)
        2 - Usage errors (invalid arguments, empty backend or role, etc.)
    """
    parser = argparse.ArgumentParser(
        prog="dbcreds",
        description="vault-dbcreds CLI - dynamic database credentials from HashiCorp Vault",
        epilog="""
Exit codes:
  0 - Success
  1 - Runtime error (configuration, authentication, Vault failure, etc.)
  2 - Usage error (invalid arguments, empty backend or role, etc.)

Environment variables:
  VAULT_ADDR         - Vault address (overrides config file)
  VAULT_TOKEN        - Vault token (otherwise read from GCP Secret Manager)
  GCP_PROJECT        - GCP project ID holding the token secret (overrides config file)
  DBCREDS_CONFIG     - Config file path
  DBCREDS_STATE_FILE - Lease store path

Configuration:
  Default location: ~/.config/vault-dbcreds/config.yml
  View current: Run 'dbcreds config show'
        """
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable debug logging to stderr"
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # version command
    _version_parser = subparsers.add_parser(
        "version",
        help="Show version information",
        description="Display the current version of vault-dbcreds"
    )

    # config command
    config_parser = subparsers.add_parser(
        "config",
        help="Configuration management",
        description="Inspect vault-dbcreds configuration"
    )
    config_subparsers = config_parser.add_subparsers(dest="config_command")

    _config_show_parser = config_subparsers.add_parser(
        "show",
        help="Show current config path",
        description="""
Display the current configuration file path and its source.

Sources:
  - environment: Path set via DBCREDS_CONFIG
  - default: Default location (~/.config/vault-dbcreds/config.yml)
        """
    )

    # creds command
    creds_parser = subparsers.add_parser(
        "creds",
        help="Database credential operations",
        description="Issue, inspect, reconcile and revoke database credential leases"
    )
    creds_subparsers = creds_parser.add_subparsers(dest="creds_command")

    issue_parser = creds_subparsers.add_parser(
        "issue",
        help="Issue new credentials",
        description="""
Read <backend>/creds/<role> from Vault, generating a brand-new lease.

Every call creates new credentials, even if a stored lease for the same
role has not expired yet. The lease is stored locally for later
'reconcile' and 'revoke' calls.
        """
    )
    issue_parser.add_argument("backend", help="Database secrets engine mount path")
    issue_parser.add_argument("role", help="Role name to generate credentials for")
    issue_parser.add_argument(
        "--show-password",
        action="store_true",
        help="Print the generated password instead of masking it"
    )
    issue_parser.add_argument(
        "-q", "--quiet",
        action="store_true",
        help="Output only the lease id (useful for scripts)"
    )

    _list_parser = creds_subparsers.add_parser(
        "list",
        help="List stored leases",
        description="List lease id, backend, role and start time of stored leases"
    )

    show_parser = creds_subparsers.add_parser(
        "show",
        help="Show a stored lease",
        description="Display the stored record of a lease"
    )
    show_parser.add_argument("lease_id", help="Lease id")
    show_parser.add_argument(
        "--show-password",
        action="store_true",
        help="Print the stored password instead of masking it"
    )

    reconcile_parser = creds_subparsers.add_parser(
        "reconcile",
        help="Reissue a lease inside its renewal window",
        description="""
Evaluate a stored lease against its renewal window and reissue it if due.

The window is configured under 'leases' in the config file. A lease whose
start time cannot be parsed has it cleared and is left unchanged.
        """
    )
    reconcile_parser.add_argument("lease_id", help="Lease id")
    reconcile_parser.add_argument(
        "--revoke-previous",
        action="store_true",
        help="Revoke the old lease before reissuing"
    )

    revoke_parser = creds_subparsers.add_parser(
        "revoke",
        help="Revoke a lease",
        description="Revoke a lease in Vault and remove its stored record"
    )
    revoke_parser.add_argument("lease_id", help="Lease id")

    args = parser.parse_args()
    _configure_logging(args.verbose)

    # If no command provided, show help and exit with usage error code
    if not args.command:
        parser.print_help()
        sys.exit(2)

    # Route to command handlers
    try:
        if args.command == "version":
            cmd_version(args)
        elif args.command == "config":
            if args.config_command == "show":
                cmd_config_show(args)
            else:
                config_parser.print_help()
                sys.exit(2)
        elif args.command == "creds":
            handlers = {
                "issue": cmd_creds_issue,
                "list": cmd_creds_list,
                "show": cmd_creds_show,
                "reconcile": cmd_creds_reconcile,
                "revoke": cmd_creds_revoke,
            }
            handler = handlers.get(args.creds_command)
            if handler is None:
                creds_parser.print_help()
                sys.exit(2)
            handler(args)
        else:
            parser.print_help()
            sys.exit(2)
    except KeyboardInterrupt:
        print("\nInterrupted", file=sys.stderr)
        sys.exit(1)
    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
