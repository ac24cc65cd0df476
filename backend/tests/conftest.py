"""
Pytest fixtures for gift desk backend tests.

Provides an app on in-memory SQLite with the local OTP provider, a capturing
mailer, a fake chat-completions client, an in-process table store for unit
tests, and seeded allow-list/catalog/client rows.
"""

import copy
from datetime import datetime
from types import SimpleNamespace

import pytest
from giftdesk import create_app
from giftdesk.extensions import db, get_runtime
from giftdesk.records import AppState, Client, GiftCatalogItem, User
from giftdesk.services.table_store import RemoteError, TableStore


ADMIN_EMAIL = "jhkang@gschargev.co.kr"
KIM_EMAIL = "kim@gschargev.co.kr"
LEE_EMAIL = "lee@gschargev.co.kr"


# =============================================================================
# TEST DOUBLES
# =============================================================================


class CapturingMailer:
    """Stands in for email delivery; remembers every code sent."""

    def __init__(self):
        self.sent = []

    def __call__(self, email, code):
        self.sent.append((email, code))

    def last_code(self, email):
        for sent_to, code in reversed(self.sent):
            if sent_to == email:
                return code
        return None


class FakeCompletions:
    def __init__(self):
        self.prompts = []
        self.reply = "새해 복 많이 받으세요."
        self.error = None

    def create(self, model, messages, **kwargs):
        self.prompts.append(messages[-1]["content"])
        if self.error is not None:
            raise self.error
        message = SimpleNamespace(content=self.reply)
        return SimpleNamespace(choices=[SimpleNamespace(message=message)])


class FakeAIClient:
    def __init__(self):
        self.completions = FakeCompletions()
        self.chat = SimpleNamespace(completions=self.completions)


class MemoryStore(TableStore):
    """
    Table gateway over plain lists. Records every call so tests can assert
    that validation failures never reach the store.
    """

    name = "memory"

    def __init__(self, tables=None):
        self.tables = copy.deepcopy(tables or {})
        self.calls = []
        self.fail_tables = set()

    def _record(self, action, table):
        self.calls.append((action, table))
        if table in self.fail_tables:
            raise RemoteError(f"{table} unavailable")

    def writes(self):
        return [c for c in self.calls if c[0] != "select"]

    def select(self, table, columns="*", *, order_by=None, descending=False):
        self._record("select", table)
        rows = copy.deepcopy(self.tables.get(table, []))
        if order_by:
            rows.sort(key=lambda r: str(r.get(order_by) or ""), reverse=descending)
        return rows

    def insert(self, table, rows):
        self._record("insert", table)
        rows = copy.deepcopy(list(rows))
        self.tables.setdefault(table, []).extend(rows)
        return copy.deepcopy(rows)

    def update(self, table, values, match):
        self._record("update", table)
        out = []
        for row in self.tables.get(table, []):
            if all(row.get(k) == v for k, v in match.items()):
                row.update(copy.deepcopy(values))
                out.append(copy.deepcopy(row))
        return out

    def delete(self, table, match):
        self._record("delete", table)
        keep, removed = [], []
        for row in self.tables.get(table, []):
            (removed if all(row.get(k) == v for k, v in match.items()) else keep).append(row)
        self.tables[table] = keep
        return removed


# =============================================================================
# SEED DATA
# =============================================================================


def gift_line(line_id, item_id, item_name, quantity, price, note=None):
    line = {
        "id": line_id,
        "year": 2026,
        "holiday": "설날",
        "catalogItemId": item_id,
        "itemName": item_name,
        "quantity": quantity,
        "price": price,
        "status": "준비중",
    }
    if note is not None:
        line["note"] = note
    return line


USER_ROWS = [
    {"email": ADMIN_EMAIL, "name": "강관리", "is_admin": True},
    {"email": KIM_EMAIL, "name": "김철수", "is_admin": False},
    {"email": LEE_EMAIL, "name": "이영희", "is_admin": "false"},
]

CATALOG_ROWS = [
    {"id": "item-vip", "name": "한우 세트", "unit_price": 150000, "target_category": "A(VIP)"},
    {"id": "item-gen", "name": "홍삼 세트", "unit_price": 10000, "target_category": "B(일반)"},
    {"id": "item-pro", "name": "커피 세트", "unit_price": 20000, "target_category": "C(잠재)"},
]

CLIENT_ROWS = [
    {
        "id": "client-kim-1", "name": "박부장", "company": "가나상사", "position": "부장",
        "phone": "010-1111-2222", "postcode": "06236", "address": "서울 강남구 테헤란로 1",
        "address_detail": "3층", "category": "B(일반)",
        "registered_by": "김철수", "registered_email": KIM_EMAIL,
        "gift_history": [gift_line("g-1", "item-gen", "홍삼 세트", 2, 20000, note="경비실 맡김")],
        "created_at": datetime(2026, 1, 1, 9, 0, 0),
    },
    {
        "id": "client-lee-1", "name": "최이사", "company": "다라전자", "position": "이사",
        "phone": "010-3333-4444", "postcode": "04524", "address": "서울 중구 세종대로 2",
        "address_detail": "", "category": "A(VIP)",
        "registered_by": "이영희", "registered_email": LEE_EMAIL,
        "gift_history": [gift_line("g-2", "item-vip", "한우 세트", 1, 150000)],
        "created_at": datetime(2026, 1, 2, 9, 0, 0),
    },
    {
        "id": "client-kim-2", "name": "정대리", "company": "마바물산", "position": "대리",
        "phone": "010-5555-6666", "postcode": "48058", "address": "부산 해운대구 센텀로 3",
        "address_detail": "101호", "category": "C(잠재)",
        "registered_by": "김철수", "registered_email": KIM_EMAIL,
        "gift_history": [
            gift_line("g-3", "item-pro", "커피 세트", 1, 20000),
            gift_line("g-4", "", "기타", 1, 0),
        ],
        "created_at": datetime(2026, 1, 3, 9, 0, 0),
    },
]


def seeded_tables():
    return {
        "users": copy.deepcopy(USER_ROWS),
        "catalog": copy.deepcopy(CATALOG_ROWS),
        "clients": copy.deepcopy(CLIENT_ROWS),
    }


def make_state(email=ADMIN_EMAIL, tables=None):
    """AppState as a bootstrap would build it for `email`."""
    tables = tables or seeded_tables()
    users = tuple(User.from_row(r) for r in tables["users"])
    clients = sorted(tables["clients"], key=lambda r: r["created_at"], reverse=True)
    return AppState(
        current_user=next((u for u in users if u.email == email), None),
        users=users,
        clients=tuple(Client.from_row(r) for r in clients),
        catalog=tuple(GiftCatalogItem.from_row(r) for r in tables["catalog"]),
        loading=False,
    )


# =============================================================================
# FIXTURES
# =============================================================================


@pytest.fixture
def mailer():
    return CapturingMailer()


@pytest.fixture
def ai_client():
    return FakeAIClient()


@pytest.fixture
def memory_store():
    return MemoryStore(seeded_tables())


@pytest.fixture
def admin_state():
    return make_state(ADMIN_EMAIL)


@pytest.fixture
def kim_state():
    return make_state(KIM_EMAIL)


@pytest.fixture(scope='function')
def app(mailer, ai_client):
    """Create application for testing on a fresh in-memory database."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'STORE_BACKEND': 'sql',
        'AUTH_BACKEND': 'local',
        'OTP_MAILER': mailer,
        'AI_CLIENT': ai_client,
        'CORPORATE_EMAIL_DOMAIN': '@gschargev.co.kr',
        'SEED_ADMIN_EMAIL': ADMIN_EMAIL,
        'BOOTSTRAP_TIMEOUT_SECONDS': 5.0,
        'CATALOG_INSERT_TIMEOUT_SECONDS': 5.0,
    })

    with app.app_context():
        db.create_all()
        yield app
        get_runtime(app).bootstrap.detach()
        db.session.remove()
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def seed(app):
    """Seed allow-list, catalog and clients through the configured store."""
    store = get_runtime(app).store
    tables = seeded_tables()
    # Boolean column; the raw rows carry one string flag
    store.insert("users", [User.from_row(r).to_row() for r in tables["users"]])
    store.insert("catalog", tables["catalog"])
    store.insert("clients", tables["clients"])
    return store


def login(client, mailer, email) -> str:
    """Run the OTP flow for `email` and return the bearer token."""
    resp = client.post('/api/auth/otp', json={'email': email})
    assert resp.status_code == 200, resp.json
    resp = client.post('/api/auth/verify', json={'email': email, 'code': mailer.last_code(email)})
    assert resp.status_code == 200, resp.json
    return resp.json['token']


def auth_headers(token: str) -> dict:
    """Helper to create Authorization headers."""
    return {'Authorization': f'Bearer {token}'}


@pytest.fixture
def admin_headers(client, mailer, seed):
    return auth_headers(login(client, mailer, ADMIN_EMAIL))


@pytest.fixture
def kim_headers(client, mailer, seed):
    return auth_headers(login(client, mailer, KIM_EMAIL))


@pytest.fixture
def lee_headers(client, mailer, seed):
    return auth_headers(login(client, mailer, LEE_EMAIL))
