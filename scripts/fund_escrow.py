"""
Escrow Account Setup Script

Creates (or loads) the Algorand account that holds escrowed contributions
and pays out milestone releases and refunds, then funds it.

Usage:
    python scripts/fund_escrow.py --amount 10
    python scripts/fund_escrow.py --check

Environment variables:
- ALGOD_SERVER / ALGOD_TOKEN: Algorand node
- ESCROW_MNEMONIC: escrow account (a new one is generated if unset)
- DEPLOYER_MNEMONIC: account that funds the escrow
"""

import argparse
import os

from milestone_escrow.algorand import (
    MICROALGOS_PER_ALGO,
    account_balance,
    fund_account,
    generate_account,
    get_algod_client,
    load_account,
    to_microalgos,
)
from milestone_escrow.config import EscrowSettings
from milestone_escrow.log import configure_logging


def create_or_load_escrow(settings: EscrowSettings) -> tuple[str, str]:
    """
    Load the escrow account from settings, or generate a new one.

    Returns:
        Tuple of (private_key, address)
    """
    if settings.escrow_mnemonic:
        private_key, address = load_account(settings.escrow_mnemonic)
        print(f"Loaded escrow account: {address}")
        return private_key, address

    private_key, address, phrase = generate_account()
    print(f"Created new escrow account: {address}")
    print(f"\n⚠️  SAVE THIS MNEMONIC (add to .env as ESCROW_MNEMONIC):")
    print(f"   {phrase}\n")
    return private_key, address


def print_balance(client, address: str) -> None:
    balance = account_balance(client, address)
    print(f"\nEscrow Account Status:")
    print(f"   Address: {balance.address}")
    print(f"   Balance: {balance.amount / MICROALGOS_PER_ALGO:.6f} ALGO")
    print(f"   Min Balance: {balance.min_balance / MICROALGOS_PER_ALGO:.6f} ALGO")
    print(f"   Available for payouts: {balance.available / MICROALGOS_PER_ALGO:.6f} ALGO")


def main():
    parser = argparse.ArgumentParser(description="Create and fund the escrow account")
    parser.add_argument("--amount", type=float, default=0, help="Amount in ALGO to fund the escrow with")
    parser.add_argument("--check", action="store_true", help="Only check balance, don't fund")
    args = parser.parse_args()

    settings = EscrowSettings.from_env()
    configure_logging(settings.log_level, settings.log_json)

    print("=" * 60)
    print("Milestone Escrow - Escrow Account Setup")
    print("=" * 60)

    client = get_algod_client(settings.algod_server, settings.algod_token)
    _, escrow_address = create_or_load_escrow(settings)

    if args.check:
        print_balance(client, escrow_address)
        return

    if args.amount > 0:
        funder_mnemonic = os.getenv("DEPLOYER_MNEMONIC")
        if not funder_mnemonic:
            print("Error: Set DEPLOYER_MNEMONIC to fund the escrow account")
            return

        funder_key, funder_address = load_account(funder_mnemonic)
        tx_id = fund_account(client, funder_key, funder_address, escrow_address, to_microalgos(args.amount))
        print(f"✅ Funded escrow with {args.amount} ALGO")
        print(f"   Transaction ID: {tx_id}")

    print_balance(client, escrow_address)


if __name__ == "__main__":
    main()
