from datetime import datetime, timedelta

PASSWORD = "s3cret-pass"


class FakeClock:
    """Settable time source for the token issuer."""

    def __init__(self, start: datetime):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs):
        self.now = self.now + timedelta(**kwargs)


def auth_header(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


def register(client, email="ada@example.com", password=PASSWORD, first="Ada", last="Lovelace"):
    return client.post(
        "/api/v1/auth/register",
        json={"email": email, "password": password, "firstName": first, "lastName": last},
    )
