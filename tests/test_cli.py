from datetime import datetime, timedelta, timezone

from models import storage
from models.refresh_token import RefreshToken
from models.token_store import RefreshTokenStore

from tests.helpers import register


def test_purge_refresh_tokens_keeps_recent_records(app, client):
    register(client)
    with app.app_context():
        owner_id = storage.find_by(RefreshToken).user_id
        store = RefreshTokenStore(storage)
        now = datetime.now(timezone.utc)
        store.create("long-gone", owner_id, now - timedelta(days=45))
        store.create("recently-expired", owner_id, now - timedelta(days=2))
        storage.save()

    result = app.test_cli_runner().invoke(args=["purge-refresh-tokens"])
    assert result.exit_code == 0
    assert "Purged 1 refresh token(s)" in result.output

    result = app.test_cli_runner().invoke(args=["purge-refresh-tokens", "--days", "1"])
    assert "Purged 1 refresh token(s)" in result.output

    with app.app_context():
        assert storage.count(RefreshToken) == 1
