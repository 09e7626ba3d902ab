"""Input validation for CLI arguments."""
import sys


def validate_path_segment(label: str, value: str) -> None:
    """
    Validate a backend path or role name is usable.

    Only leading and trailing '/' are stripped when the creds path is built,
    so a value made only of separators would produce an empty segment.

    Args:
        label: Argument name used in the error message
        value: Raw argument value

    Raises:
        SystemExit with code 2 if validation fails
    """
    if not value or not value.strip("/"):
        print(f"Error: {label} cannot be empty", file=sys.stderr)
        print("\nExamples of valid values:", file=sys.stderr)
        print("  ✓ database", file=sys.stderr)
        print("  ✓ /database/", file=sys.stderr)
        print("  ✓ teams/payments/postgres", file=sys.stderr)
        sys.exit(2)


def validate_lease_id(lease_id: str) -> None:
    """
    Validate a lease id is not empty.

    Raises:
        SystemExit with code 2 if validation fails
    """
    if not lease_id or lease_id.strip() == "":
        print("Error: Lease id cannot be empty", file=sys.stderr)
        print("\nRun 'dbcreds creds list' to see stored lease ids.", file=sys.stderr)
        sys.exit(2)
