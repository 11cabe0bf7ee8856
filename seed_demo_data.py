"""
Demo Data Seeder for SessionGuard

Creates demo data directly in the configured database:
- 3 active users with live sessions
- 1 deactivated user (login and refresh are refused)
- a few already-expired refresh-token rows for the reaper to clean up

Run `alembic upgrade head` first, then this script.
"""
from datetime import timedelta

from sessionguard.core.lifecycle import TokenLifecycleManager
from sessionguard.core.service import AuthService
from sessionguard.core.store import CredentialStore
from sessionguard.database import SessionLocal
from sessionguard.utils.jwt_utils import TokenCodec, utcnow

DEMO_PASSWORD = "demo-password-123"

DEMO_USERS = [
    {"email": "ada@example.com", "name": "Ada Lovelace", "active": True},
    {"email": "grace@example.com", "name": "Grace Hopper", "active": True},
    {"email": "alan@example.com", "name": "Alan Turing", "active": True},
    {"email": "mallory@example.com", "name": "Mallory Banned", "active": False},
]

# Days past expiry for the stale rows seeded per active user
STALE_TOKEN_AGES = [1, 3]


def seed_demo_data():
    """Main function to seed all demo data"""
    print("SessionGuard Demo Data Seeder")
    print("=" * 50)

    db = SessionLocal()
    try:
        store = CredentialStore(db)
        codec = TokenCodec.from_settings()
        service = AuthService(store, TokenLifecycleManager(store, codec))

        created = []

        # Step 1: Register users (each registration opens a session)
        print("\nRegistering demo users...")
        for config in DEMO_USERS:
            result = service.register(config["email"], DEMO_PASSWORD, config["name"])
            if not result.ok:
                print(f"[!] {config['email']}: {result.error.message}, skipping...")
                continue
            created.append((config, result.session.user))
            print(f"[+] Registered {config['name']} (ID: {result.session.user.id})")

        # Step 2: Deactivate flagged users and revoke their sessions
        print("\nDeactivating users...")
        for config, user in created:
            if config["active"]:
                continue
            store.set_user_active(user.id, False)
            revoked = service.lifecycle.revoke_all(user.id)
            print(f"[+] Deactivated {config['email']} ({revoked} refresh token(s) revoked)")

        # Step 3: Stale rows for the reaper
        print("\nInserting expired refresh tokens...")
        stale = 0
        now = utcnow()
        for config, user in created:
            if not config["active"]:
                continue
            for days in STALE_TOKEN_AGES:
                issued = codec.issue_refresh(user.id)
                store.insert_refresh_token(user.id, issued.token, now - timedelta(days=days))
                stale += 1
        print(f"[+] Inserted {stale} expired rows")

        # Summary
        print("\n" + "=" * 50)
        print("Demo data seeding complete!")
        print(f"Users created: {len(created)}")
        print(f"Active refresh tokens: {store.count_active(utcnow())}")
        print(f"Password for every demo user: {DEMO_PASSWORD}")
    finally:
        db.close()


if __name__ == "__main__":
    try:
        seed_demo_data()
    except Exception as e:
        print(f"\n[-] Error during seeding: {e}")
        print("Make sure the database is reachable and migrated (alembic upgrade head)")
