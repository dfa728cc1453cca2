"""Run a quick in-process smoke test against the app.

Logs in as the seeded admin and prints the health check and a summary
of the shared catalog.
"""

import os
import sys

# Ensure backend folder is on sys.path so `prep_tracker` package can be imported
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from fastapi.testclient import TestClient
from prep_tracker.config import settings
from prep_tracker.main import app


def run():
    with TestClient(app) as client:
        resp = client.get('/health')
        print('STATUS:', resp.status_code, resp.json())
        login = client.post('/api/auth/login', json={'email': settings.ADMIN_EMAIL, 'password': settings.ADMIN_PASSWORD})
        if login.status_code != 200:
            print('Admin login failed:', login.json())
            return
        headers = {'Authorization': f"Bearer {login.json()['token']}"}
        data = client.get('/api/data', headers=headers).json()
        print('subjects:', len(data['subjects']), 'tasks:', len(data['tasks']), 'tests:', len(data['tests']))


if __name__ == '__main__':
    run()
