#!/usr/bin/env python3
"""
Walk a running server through the basic request lifecycle.

Registers a user, submits a request, has an admin complete it and checks the
user's unread notifications. The admin account must already exist
(see ``create_admin.py``).

    python scripts/api_smoke.py --admin-email admin@example.edu --admin-password secret1
"""

import argparse
import json
import sys
import uuid

import requests

BASE_URL = "http://localhost:8000"

def print_response(response):
    print(f"Status Code: {response.status_code}")
    print("Response Body:")
    try:
        print(json.dumps(response.json(), indent=2))
    except ValueError:
        print(response.text)
    print("-" * 50)

def register_user(base_url, name, email, password):
    print(f"\nRegistering user: {email}")
    response = requests.post(f"{base_url}/auth/register", json={
        "name": name,
        "email": email,
        "password": password
    })
    print_response(response)
    return response

def login_user(base_url, email, password):
    print(f"\nLogging in user: {email}")
    response = requests.post(f"{base_url}/auth/login", data={
        "username": email,
        "password": password
    })
    print_response(response)
    response.raise_for_status()
    return response.json()["access_token"]

def auth_headers(token):
    return {"Authorization": f"Bearer {token}"}

def main():
    parser = argparse.ArgumentParser(description="Smoke-test the request workflow")
    parser.add_argument("--base-url", default=BASE_URL)
    parser.add_argument("--admin-email", required=True)
    parser.add_argument("--admin-password", required=True)
    args = parser.parse_args()

    email = f"amaka+{uuid.uuid4().hex[:8]}@x.com"
    if register_user(args.base_url, "Amaka", email, "secret1").status_code != 201:
        sys.exit("Registration failed")
    user_token = login_user(args.base_url, email, "secret1")

    print("\nSubmitting service request")
    response = requests.post(f"{args.base_url}/requests", headers=auth_headers(user_token), json={
        "serviceType": "General Waste Collection",
        "location": "Library",
        "description": "bin full"
    })
    print_response(response)
    request = response.json()["request"]
    assert request["status"] == "pending"

    admin_token = login_user(args.base_url, args.admin_email, args.admin_password)
    print("\nCompleting request as admin")
    response = requests.put(
        f"{args.base_url}/requests/{request['id']}",
        headers=auth_headers(admin_token),
        json={"status": "completed"}
    )
    print_response(response)
    assert response.json()["request"]["status"] == "completed"

    print("\nChecking unread notifications")
    response = requests.get(
        f"{args.base_url}/notifications",
        headers=auth_headers(user_token),
        params={"read": "false"}
    )
    print_response(response)
    messages = [notification["message"] for notification in response.json()["notifications"]]
    assert any("completed" in message for message in messages)

    print("\nSmoke test completed.")

if __name__ == "__main__":
    main()
