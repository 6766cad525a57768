import io
import os
import unittest
from datetime import datetime, timezone
from uuid import UUID

from botocore.exceptions import ClientError

os.environ.setdefault("DATABASE_URL", "sqlite+pysqlite:///:memory:")

from app.core.errors import InvalidRequestError
from app.services.csv_export import csv_value
from app.services.csv_io import cell, read_csv, require_header, write_csv
from app.services.devices import endpoint_id_for, is_valid_mac, normalize_mac
from app.services.firmware_storage import FirmwareStorage, build_object_key, object_key_from_path
from app.services.groups import validate_download_period


class _FakeS3Client:
    def __init__(self, existing=()):
        self.objects = set(existing)
        self.deleted = []

    def copy_object(self, Bucket, Key, CopySource):
        source = (CopySource["Bucket"], CopySource["Key"])
        if source not in self.objects:
            raise ClientError({"Error": {"Code": "NoSuchKey", "Message": "Not Found"}}, "CopyObject")
        self.objects.add((Bucket, Key))

    def delete_object(self, Bucket, Key):
        self.deleted.append((Bucket, Key))
        self.objects.discard((Bucket, Key))


def _storage_with(client) -> FirmwareStorage:
    storage = FirmwareStorage.__new__(FirmwareStorage)
    storage.client = client
    storage._checked_buckets = {"firmware", "trash"}
    return storage


class CsvTests(unittest.TestCase):
    def test_read_csv_strips_bom_and_blank_rows(self):
        raw = "﻿Path ,Data Type\nDevice.A,string\n,\n\nDevice.B,int\n".encode("utf-8")
        header, rows = read_csv(io.BytesIO(raw))
        self.assertEqual(header, ["Path", "Data Type"])
        self.assertEqual(rows, [["Device.A", "string"], ["Device.B", "int"]])

    def test_read_csv_rejects_empty_and_non_utf8_files(self):
        with self.assertRaises(InvalidRequestError):
            read_csv(io.BytesIO(b""))
        with self.assertRaises(InvalidRequestError):
            read_csv(io.BytesIO("Path\nприбор\n".encode("cp1251")))

    def test_require_header_checks_leading_columns(self):
        require_header(["MAC Address", "Note"], ("MAC Address",))
        with self.assertRaises(InvalidRequestError) as ctx:
            require_header(["Mac"], ("MAC Address",))
        self.assertEqual(ctx.exception.message, "invalid CSV header, expected: MAC Address")

    def test_cell_defaults_for_short_rows(self):
        self.assertEqual(cell([" a "], 0), "a")
        self.assertEqual(cell([" a "], 3), "")

    def test_write_csv_and_values(self):
        text = write_csv(("a", "b"), [["x,y", "z"]])
        self.assertEqual(text.splitlines(), ["a,b", '"x,y",z'])
        self.assertEqual(csv_value(None), "")
        self.assertEqual(csv_value(True), "true")
        self.assertEqual(csv_value(["a", "b"]), "a;b")
        self.assertEqual(csv_value(UUID("0b5cbb5e-7b0a-4a51-9c8e-1d5a2d0f2c11")), "0b5cbb5e-7b0a-4a51-9c8e-1d5a2d0f2c11")
        self.assertEqual(csv_value(datetime(2026, 3, 1, 12, 0)), "2026-03-01T12:00:00+00:00")
        self.assertEqual(
            csv_value(datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc), timezone.utc),
            "2026-03-01T12:00:00+00:00",
        )


class DeviceIdentityTests(unittest.TestCase):
    def test_mac_normalization(self):
        self.assertEqual(normalize_mac(" AA:BB:CC:DD:EE:FF "), "aabbccddeeff")
        self.assertEqual(normalize_mac("aa-bb-cc-dd-ee-ff"), "aabbccddeeff")
        self.assertTrue(is_valid_mac("aabbccddeeff"))
        self.assertFalse(is_valid_mac("aabbccddeef"))
        self.assertFalse(is_valid_mac("gabbccddeeff"))

    def test_endpoint_id(self):
        self.assertEqual(endpoint_id_for("a1b2c3d4e5f6"), "os::A1B2C3-A1B2C3D4E5F6")

    def test_download_period(self):
        validate_download_period("00:00~23:59")
        for bad in ("24:00~01:00", "1:00~2:00", "00:00-01:00", ""):
            with self.subTest(value=bad):
                with self.assertRaises(InvalidRequestError):
                    validate_download_period(bad)


class FirmwareStorageTests(unittest.TestCase):
    def test_object_keys(self):
        self.assertEqual(build_object_key("Router X", "fw 1.0"), "Router_X/fw_1.0")
        self.assertEqual(
            object_key_from_path("http://s3.local/firmware/Router_X/fw-1.0?X-Amz-Expires=60", "firmware"),
            "Router_X/fw-1.0",
        )
        self.assertIsNone(object_key_from_path("http://s3.local/other/fw-1.0", "firmware"))
        self.assertIsNone(object_key_from_path("", "firmware"))

    def test_move_copies_then_deletes(self):
        client = _FakeS3Client({("firmware", "m/fw")})
        self.assertTrue(_storage_with(client).move("firmware", "trash", "m/fw"))
        self.assertEqual(client.objects, {("trash", "m/fw")})
        self.assertEqual(client.deleted, [("firmware", "m/fw")])

    def test_move_of_missing_object_is_a_no_op(self):
        client = _FakeS3Client()
        self.assertFalse(_storage_with(client).move("firmware", "trash", "m/fw"))
        self.assertEqual(client.deleted, [])
