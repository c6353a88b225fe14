import os
import unittest
from unittest.mock import patch

import jwt
from fastapi import HTTPException

from app.config import get_settings
from app.core.security import authenticate_request

JWT_SECRET = "security-test-secret-with-enough-length"


class AuthenticateRequestTest(unittest.TestCase):
    def setUp(self):
        self.env = patch.dict(os.environ, {"API_KEYS": "alpha, beta", "JWT_SECRET": JWT_SECRET})
        self.env.start()
        get_settings.cache_clear()

    def tearDown(self):
        self.env.stop()
        get_settings.cache_clear()

    def test_api_key_uses_headers_for_actor(self):
        actor = authenticate_request(
            "beta", None, user_id="u1", organization_id="org", cost_center_id="cc"
        )
        self.assertEqual(actor.user_id, "u1")
        self.assertEqual(actor.organization_id, "org")
        self.assertEqual(actor.cost_center_id, "cc")
        self.assertEqual(actor.auth_type, "api_key")

    def test_api_key_requires_user(self):
        with self.assertRaises(HTTPException) as ctx:
            authenticate_request("alpha", None)
        self.assertEqual(ctx.exception.status_code, 401)

    def test_unknown_api_key(self):
        with self.assertRaises(HTTPException) as ctx:
            authenticate_request("gamma", None, user_id="u1")
        self.assertEqual(ctx.exception.status_code, 401)

    def test_jwt_claims_define_actor(self):
        token = jwt.encode(
            {"sub": "u2", "organizationId": "org", "costCenterId": "cc"},
            JWT_SECRET,
            algorithm="HS256",
        )
        actor = authenticate_request(None, f"Bearer {token}", cost_center_id="ignored")
        self.assertEqual(actor.user_id, "u2")
        self.assertEqual(actor.organization_id, "org")
        self.assertEqual(actor.cost_center_id, "cc")
        self.assertEqual(actor.auth_type, "jwt")

    def test_jwt_with_wrong_secret(self):
        token = jwt.encode({"sub": "u2"}, "another-secret-that-is-long-enough-too", algorithm="HS256")
        with self.assertRaises(HTTPException) as ctx:
            authenticate_request(None, f"Bearer {token}")
        self.assertEqual(ctx.exception.detail, "Invalid JWT")

    def test_jwt_without_subject(self):
        token = jwt.encode({"organization_id": "org"}, JWT_SECRET, algorithm="HS256")
        with self.assertRaises(HTTPException) as ctx:
            authenticate_request(None, f"Bearer {token}")
        self.assertEqual(ctx.exception.status_code, 401)

    def test_no_credentials(self):
        with self.assertRaises(HTTPException) as ctx:
            authenticate_request(None, "Basic abc")
        self.assertEqual(ctx.exception.detail, "Not authenticated")


if __name__ == "__main__":
    unittest.main()
