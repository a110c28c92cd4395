import hashlib
import hmac
import json
import time
from datetime import timedelta

import jwt

from services.utils import utcnow

JWT_SECRET = 'test-jwt-secret'
WEBHOOK_SECRET = 'whsec_test_secret'


def make_token(user_id, secret=JWT_SECRET, **claims):
    payload = {'userId': user_id, 'exp': utcnow() + timedelta(hours=1)}
    payload.update(claims)
    return jwt.encode(payload, secret, algorithm='HS256')


def auth_headers(user_id):
    return {'Authorization': f"Bearer {make_token(user_id)}"}


def sign_payload(payload, secret=WEBHOOK_SECRET, timestamp=None):
    timestamp = timestamp or int(time.time())
    signed = f"{timestamp}.{payload}".encode('utf-8')
    signature = hmac.new(secret.encode('utf-8'), signed, hashlib.sha256).hexdigest()
    return f"t={timestamp},v1={signature}"


def stripe_event(event_type, obj, event_id='evt_test_1'):
    return json.dumps({
        'id': event_id,
        'object': 'event',
        'type': event_type,
        'data': {'object': obj},
    })
