"""Print a bearer token for a LeaseDesk account.

Run: `python -m leasedesk.manage_issue_token --user-id user-platform-owner`
"""

import argparse

from .auth.jwt import create_access_token, decode_token


def main():
    parser = argparse.ArgumentParser(description="Issue an access token for an existing user id")
    parser.add_argument("--user-id", required=True)
    args = parser.parse_args()

    token = create_access_token(args.user_id)
    claims = decode_token(token)
    print(f"Token for {claims['sub']} (expires {claims['exp']}):")
    print(token)


if __name__ == "__main__":
    main()
