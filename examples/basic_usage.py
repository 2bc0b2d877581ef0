#!/usr/bin/env python3
"""
ArangoDB Python Client - Basic Usage Example

This example demonstrates:
- Connecting to several coordinators
- Basic document operations
- Stream transactions (commit and abort)
- Graceful lookups
"""
import logging

from arangoclient import ArangoError, Client, ReadDocumentOptions


def main():
    logging.basicConfig(level=logging.INFO)

    print("=" * 60)
    print("ArangoDB Python Client - Basic Usage Example")
    print("=" * 60)

    client = Client(
        hosts=["http://localhost:8529", "http://localhost:8539"],
        username="root",
        password="",
    )

    # Check connection
    if client.ping():
        print("✓ Successfully connected to ArangoDB")
    else:
        print("✗ Failed to connect to ArangoDB")
        return

    users = client.collection("users")
    if not users.exists():
        users.create()

    print("\n1. DOCUMENTS")
    print("-" * 60)
    meta = users.save({"_key": "alice", "name": "Alice Johnson", "age": 30})
    print(f"Inserted {meta['_id']} (rev {meta['_rev']})")
    users.update("alice", {"age": 31}, rev=meta["_rev"])
    print(f"Alice is now {users.document('alice')['age']}")

    print("\n2. TRANSACTION (commit)")
    print("-" * 60)
    with client.begin_transaction(users) as trx:
        trx.run(users.save, {"_key": "bob", "name": "Bob Smith"})
        print(f"Visible inside: {trx.run(users.document_exists, 'bob')}")
        print(f"Visible outside: {users.document_exists('bob')}")
    print(f"After commit: {users.document_exists('bob')}")

    print("\n3. TRANSACTION (abort)")
    print("-" * 60)
    trx = client.begin_transaction(users)
    trx.run(users.save, {"_key": "carol", "name": "Carol White"})
    trx.abort()
    print(f"Carol after abort: {users.document('carol', ReadDocumentOptions(graceful=True))}")

    print("\n4. ERRORS")
    print("-" * 60)
    try:
        users.document("ghost")
    except ArangoError as e:
        print(f"errorNum={e.error_num} code={e.code}: {e.message}")

    # Clean up
    users.drop()
    client.close()


if __name__ == "__main__":
    main()
