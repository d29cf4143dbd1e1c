"""
Integration Tests for Authentication

Verifies that the main application correctly integrates:
- JWT verification dependency
- Protected route denial (401)
- Protected route access (200) w/ valid token
"""


class TestAuthIntegration:

    async def test_protected_route_no_auth(self, async_client):
        """Accessing a protected route without auth should return 401."""
        response = await async_client.get("/api/access/me")
        assert response.status_code == 401
        assert response.json()["detail"] == "Missing authorization token"

    async def test_protected_route_invalid_token(self, async_client):
        """Accessing with invalid token should return 401."""
        response = await async_client.get(
            "/api/access/me",
            headers={"Authorization": "Bearer invalid.token.here"}
        )
        assert response.status_code == 401

    async def test_protected_route_valid_auth(self, async_client, auth_headers, seed, mock_user_id):
        """A valid token reaches the resolver and resolves the caller's subscription."""
        await seed.subscription(mock_user_id)

        response = await async_client.get("/api/access/me", headers=auth_headers)

        assert response.status_code == 200
        data = response.json()
        assert data["has_access"] is True
        assert data["subscription"]["user_id"] == mock_user_id

    async def test_invitations_require_auth(self, async_client):
        response = await async_client.post("/api/team/invitations", json={"email": "a@b.c"})
        assert response.status_code == 401
