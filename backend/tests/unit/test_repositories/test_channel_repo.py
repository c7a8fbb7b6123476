from datetime import datetime, timedelta

from supportdesk.domain.enums import ChannelStatus
from supportdesk.repositories.channel_repo import ChannelConfigRepository, channel_from_document
from supportdesk.services.channel_health import get_channel_health_status

from tests.fakes import NOW


class FakeCursor(list):
    def sort(self, key, direction):
        return FakeCursor(sorted(self, key=lambda doc: (doc.get(key) is not None, doc.get(key) or datetime.min)))


class FakeCollection:
    """The slice of pymongo's Collection the repository uses"""

    def __init__(self, docs):
        self.docs = docs

    def find_one(self, query):
        return next((dict(doc) for doc in self.docs if doc["id"] == query["id"]), None)

    def find(self, query):
        return FakeCursor(dict(doc) for doc in self.docs if all(doc.get(k) == v for k, v in query.items()))


def _sms_doc(**fields):
    doc = {
        "_id": "665f1c",
        "id": "sms-1",
        "type": "sms",
        "status": "connected",
        "is_active": True,
        "config": {"twilioAccountSid": "AC1", "twilioAuthToken": "tok", "twilioPhoneNumber": "+15550100"},
    }
    doc.update(fields)
    return doc


def test_naive_mongo_datetimes_become_utc_aware():
    naive = (NOW - timedelta(hours=1)).replace(tzinfo=None)
    channel = ChannelConfigRepository(FakeCollection([_sms_doc(last_sync=naive)])).get_channel("sms-1")

    assert channel.last_sync == NOW - timedelta(hours=1)
    assert get_channel_health_status(channel, now=NOW) == ChannelStatus.CONNECTED


def test_iso_string_timestamps_are_parsed():
    channel = channel_from_document(_sms_doc(
        last_sync="2026-01-15T13:00:00+02:00",
        last_error_time="",
        created_at="2026-01-01T00:00:00Z",
    ))

    assert channel.last_sync == NOW - timedelta(hours=1)
    assert channel.last_error_time is None
    assert channel.created_at.tzinfo is not None


def test_find_by_type_returns_active_channels_only():
    repo = ChannelConfigRepository(FakeCollection([
        _sms_doc(),
        _sms_doc(id="sms-2", is_active=False, created_at=datetime(2026, 1, 2)),
    ]))

    assert [channel.id for channel in repo.find_by_type("sms")] == ["sms-1"]
    assert [channel.id for channel in repo.find_by_type("sms", active_only=False)] == ["sms-1", "sms-2"]
