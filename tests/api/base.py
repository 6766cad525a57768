import io
import os
import unittest
from uuid import UUID, uuid4

from fastapi.testclient import TestClient
from sqlalchemy import create_engine, delete, func, select
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

# Ensure settings can be initialized in test environments
os.environ.setdefault("DATABASE_URL", "sqlite+pysqlite:///:memory:")
os.environ.setdefault("S3_ENDPOINT", "http://localhost:9000")
os.environ.setdefault("S3_ACCESS_KEY", "test")
os.environ.setdefault("S3_SECRET_KEY", "test")

from app.core.config import settings
from app.db.session import Base, get_db
from app.main import app
from app.models.device import Device
from app.models.device_model import DeviceModel
from app.models.firmware import Firmware
from app.models.group import Group
from app.models.parameter import Parameter
from app.models.profile import Profile
from app.models.profile_parameter import ProfileParameter
from app.services.firmware_storage import get_firmware_storage

ACTOR = "operator"
ACTOR_HEADERS = {"User-Name": ACTOR}

MODELS = (DeviceModel, Firmware, Group, Device, Parameter, Profile, ProfileParameter)


class FakeFirmwareStorage:
    def __init__(self):
        self.objects = {}
        self.moves = []

    def upload(self, bucket, key, fileobj, content_type=None):
        self.objects[(bucket, key)] = fileobj.read()
        return f"http://storage.local/{bucket}/{key}?X-Amz-Expires=60"

    def move(self, src_bucket, dst_bucket, key):
        self.moves.append((src_bucket, dst_bucket, key))
        payload = self.objects.pop((src_bucket, key), None)
        if payload is None:
            return False
        self.objects[(dst_bucket, key)] = payload
        return True


def csv_upload(content: str, name: str = "upload.csv"):
    return {"file": (name, io.BytesIO(content.encode("utf-8")), "text/csv")}


class ManagementApiBase(unittest.TestCase):
    @classmethod
    def setUpClass(cls):
        cls.engine = create_engine(
            "sqlite+pysqlite:///:memory:",
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
        cls.SessionLocal = sessionmaker(bind=cls.engine, autocommit=False, autoflush=False)
        Base.metadata.create_all(bind=cls.engine, tables=[m.__table__ for m in MODELS])

    @classmethod
    def tearDownClass(cls):
        Base.metadata.drop_all(bind=cls.engine, tables=[m.__table__ for m in MODELS])
        cls.engine.dispose()

    def setUp(self):
        with self.SessionLocal() as db:
            for model in reversed(MODELS):
                db.execute(delete(model))
            db.commit()

        def override_get_db():
            db = self.SessionLocal()
            try:
                yield db
            finally:
                db.close()

        self.storage = FakeFirmwareStorage()
        app.dependency_overrides[get_db] = override_get_db
        app.dependency_overrides[get_firmware_storage] = lambda: self.storage
        self.client = TestClient(app)

    def tearDown(self):
        self.client.close()
        app.dependency_overrides.clear()

    def count_rows(self, model, **filters) -> int:
        stmt = select(func.count()).select_from(model)
        for key, value in filters.items():
            stmt = stmt.where(getattr(model, key) == value)
        with self.SessionLocal() as db:
            return int(db.execute(stmt).scalar_one())

    def assertError(self, response, status_code: int, key: str, detail: str | None = None):
        self.assertEqual(response.status_code, status_code, response.text)
        body = response.json()
        self.assertEqual(body["key"], key)
        if detail is not None:
            self.assertEqual(body["detail"], detail)
        return body

    def create_model(self, name: str = "Router-X", **extra) -> str:
        response = self.client.post("/api/models", headers=ACTOR_HEADERS, json={"name": name, **extra})
        self.assertEqual(response.status_code, 201, response.text)
        return response.json()["id"]

    def create_group(self, model_id: str, name: str = "Lab", **extra) -> str:
        response = self.client.post(
            f"/api/models/{model_id}/groups",
            headers=ACTOR_HEADERS,
            json={"name": name, **extra},
        )
        self.assertEqual(response.status_code, 201, response.text)
        return response.json()["id"]

    def create_parameter(self, path: str, data_type: str = "string") -> str:
        response = self.client.post(
            "/api/parameters",
            headers=ACTOR_HEADERS,
            json={"path": path, "data_type": data_type},
        )
        self.assertEqual(response.status_code, 201, response.text)
        return response.json()["id"]

    def create_firmware(self, model_id: str, name: str = "fw-1.0", payload: bytes = b"\x7fELF") -> str:
        response = self.client.post(
            f"/api/models/{model_id}/firmwares",
            headers=ACTOR_HEADERS,
            data={"name": name},
            files={"file": ("image.bin", io.BytesIO(payload), "application/octet-stream")},
        )
        self.assertEqual(response.status_code, 201, response.text)
        return response.json()["id"]
