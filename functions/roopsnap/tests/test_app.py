import re
import tempfile
import unittest
from pathlib import Path
from unittest.mock import MagicMock, patch

from fastapi.testclient import TestClient

from roopsnap.app import create_app
from roopsnap.config import Settings
from roopsnap.dependencies import (
    build_contact_chain,
    build_photo_chain,
    get_contact_chain,
    get_document_store,
    get_object_storage,
    get_photo_chain,
    get_profile_store,
)
from roopsnap.db import SqlPhotoBackend
from roopsnap.docstore import InMemoryDocumentStore
from roopsnap.local_store import LocalFileStore
from roopsnap.profile import ProfileStore
from roopsnap.schemas import DEFAULT_PROFILE_TITLE
from roopsnap.storage import InMemoryObjectStorage

OBJECT_ID = re.compile(r"^[0-9a-f]{24}$")
ISO_UTC = re.compile(r"^\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}\.\d{3}Z$")


def _local_settings() -> Settings:
    return Settings(
        _env_file=None,
        mongodb_uri=None,
        database_url=None,
        storage_endpoint=None,
    )


class ApiTestCase(unittest.TestCase):
    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.addCleanup(self.tmp.cleanup)
        self.local = LocalFileStore(self.tmp.name)
        self.app = create_app()
        self.use_backends()
        self.client = TestClient(self.app)

    def use_backends(self, document_store=None, storage=None, settings=None):
        settings = settings or _local_settings()
        overrides = self.app.dependency_overrides
        contact_chain = build_contact_chain(document_store, self.local)
        photo_chain = build_photo_chain(settings, document_store, self.local)
        overrides[get_document_store] = lambda: document_store
        overrides[get_contact_chain] = lambda: contact_chain
        overrides[get_photo_chain] = lambda: photo_chain
        overrides[get_object_storage] = lambda: storage
        profiles = ProfileStore(document_store) if document_store is not None else None
        overrides[get_profile_store] = lambda: profiles

    def delete(self, path, payload=None):
        if payload is None:
            return self.client.request("DELETE", path)
        return self.client.request("DELETE", path, json=payload)


class ContactApiTests(ApiTestCase):
    payload = {"name": "A", "email": "a@x.com", "phone": "555", "message": "hi"}

    def test_create_then_list(self):
        response = self.client.post("/api/contact", json=self.payload)
        self.assertEqual(response.status_code, 200)
        body = response.json()
        self.assertTrue(body["success"])
        data = body["data"]
        for key, value in self.payload.items():
            self.assertEqual(data[key], value)
        self.assertRegex(data["created_at"], ISO_UTC)
        self.assertTrue(data["id"])

        listed = self.client.get("/api/contact").json()
        self.assertEqual(len(listed), 1)
        self.assertEqual(listed[0], data)

    def test_phone_is_optional(self):
        response = self.client.post(
            "/api/contact", json={"name": "B", "email": "b@x.com", "message": "hello"}
        )
        self.assertEqual(response.status_code, 200)
        self.assertIsNone(response.json()["data"]["phone"])

    def test_missing_required_field_is_rejected(self):
        response = self.client.post("/api/contact", json={"name": "A", "phone": "1"})
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["error"], "Invalid request")
        self.assertEqual(self.local.get_messages(), [])

    def test_list_is_sorted_newest_first(self):
        self.local.save_messages(
            [
                {"id": "1", "name": "old", "email": "e", "phone": None, "message": "m",
                 "created_at": "2024-01-01T00:00:00.000Z"},
                {"id": "2", "name": "new", "email": "e", "phone": None, "message": "m",
                 "created_at": "2024-03-01T00:00:00.000Z"},
                {"id": "3", "name": "mid", "email": "e", "phone": None, "message": "m",
                 "created_at": "2024-02-01T00:00:00.000Z"},
            ]
        )
        names = [m["name"] for m in self.client.get("/api/contact").json()]
        self.assertEqual(names, ["new", "mid", "old"])

    def test_delete_without_id(self):
        for response in (self.delete("/api/contact", {}), self.delete("/api/contact")):
            self.assertEqual(response.status_code, 400)
            self.assertEqual(response.json()["error"], "No ID provided")

    def test_delete_unknown_id_leaves_messages(self):
        self.client.post("/api/contact", json=self.payload)
        response = self.delete("/api/contact", {"id": "does-not-exist"})
        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.json()["error"], "Message not found")
        self.assertEqual(len(self.client.get("/api/contact").json()), 1)

    def test_delete_existing_message(self):
        first = self.client.post("/api/contact", json=self.payload).json()["data"]
        second = self.client.post("/api/contact", json=self.payload).json()["data"]
        self.assertNotEqual(first["id"], second["id"])

        response = self.delete("/api/contact", {"id": first["id"]})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json(), {"success": True})
        remaining = [m["id"] for m in self.client.get("/api/contact").json()]
        self.assertEqual(remaining, [second["id"]])

    def test_delete_accepts_numeric_id_for_local_messages(self):
        self.local.save_messages(
            [{"id": 1700000000000, "name": "n", "email": "e", "message": "m",
              "created_at": "2024-01-01T00:00:00.000Z"}]
        )
        response = self.delete("/api/contact", {"id": 1700000000000})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(self.local.get_messages(), [])

    def test_document_store_is_preferred(self):
        store = InMemoryDocumentStore()
        self.use_backends(document_store=store)

        data = self.client.post("/api/contact", json=self.payload).json()["data"]
        self.assertRegex(data["id"], OBJECT_ID)
        self.assertEqual(self.local.get_messages(), [])
        self.assertEqual(len(store.collections["contact_messages"]), 1)

        listed = self.client.get("/api/contact").json()
        self.assertEqual(listed, [data])

        self.assertEqual(self.delete("/api/contact", {"id": data["id"]}).status_code, 200)
        self.assertEqual(store.collections["contact_messages"], [])

    def test_falls_back_to_local_when_document_store_fails(self):
        store = MagicMock()
        store.find_all.side_effect = RuntimeError("connection refused")
        store.insert_one.side_effect = RuntimeError("connection refused")
        self.use_backends(document_store=store)

        response = self.client.post("/api/contact", json=self.payload)
        self.assertEqual(response.status_code, 200)
        self.assertEqual(len(self.local.get_messages()), 1)
        self.assertEqual(len(self.client.get("/api/contact").json()), 1)

    def test_terminal_store_failure_is_reported(self):
        with patch.object(LocalFileStore, "save_messages", return_value=False):
            response = self.client.post("/api/contact", json=self.payload)
        self.assertEqual(response.status_code, 500)
        body = response.json()
        self.assertEqual(body["error"], "Database error")
        self.assertIn("not writable", body["details"])

    def test_delete_falls_back_to_local_when_document_delete_fails(self):
        self.local.save_messages(
            [{"id": "42", "name": "n", "email": "e", "phone": None, "message": "m",
              "created_at": "2024-01-01T00:00:00.000Z"}]
        )
        store = MagicMock()
        store.delete_by_id.side_effect = RuntimeError("connection refused")
        self.use_backends(document_store=store)

        response = self.delete("/api/contact", {"id": "42"})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json(), {"success": True})
        store.delete_by_id.assert_called_once_with("contact_messages", "42")
        self.assertEqual(self.local.get_messages(), [])

    def test_malformed_stored_messages_are_skipped(self):
        self.local.save_messages(
            [
                {"id": 1, "name": "ok", "email": "e", "phone": None, "message": "m",
                 "created_at": "2024-01-01T00:00:00.000Z"},
                {"id": 2, "name": "legacy", "email": "e",
                 "created_at": "2024-01-02T00:00:00.000Z"},
                {"id": 3, "name": "bad phone", "email": "e", "phone": 5551234,
                 "message": "m", "created_at": "2024-01-03T00:00:00.000Z"},
                "not a record",
            ]
        )
        response = self.client.get("/api/contact")
        self.assertEqual(response.status_code, 200)
        self.assertEqual([m["name"] for m in response.json()], ["ok"])

    def test_malformed_documents_are_skipped(self):
        store = InMemoryDocumentStore()
        store.insert_one("contact_messages", {"name": "legacy", "email": "e"})
        self.use_backends(document_store=store)
        data = self.client.post("/api/contact", json=self.payload).json()["data"]

        response = self.client.get("/api/contact")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json(), [data])


class PhotoApiTests(ApiTestCase):
    def test_create_from_url(self):
        response = self.client.post("/api/photos", json={"url": "https://cdn.test/a.jpg"})
        self.assertEqual(response.status_code, 200)
        data = response.json()["data"]
        self.assertEqual(data["url"], "https://cdn.test/a.jpg")
        self.assertEqual(data["category"], "Portrait")
        self.assertRegex(data["created_at"], ISO_UTC)

    def test_create_from_url_requires_url(self):
        response = self.client.post("/api/photos", json={"category": "Wedding"})
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["error"], "No URL provided")

    def test_upload_without_object_storage_becomes_data_uri(self):
        response = self.client.post(
            "/api/photos",
            files={"file": ("a.png", b"\x89PNG-bytes", "image/png")},
            data={"category": "Wedding"},
        )
        self.assertEqual(response.status_code, 200)
        data = response.json()["data"]
        self.assertTrue(data["url"].startswith("data:image/png;base64,"))
        self.assertEqual(data["category"], "Wedding")
        self.assertEqual(self.local.get_photos()[0]["url"], data["url"])

    def test_upload_with_object_storage_stores_public_url(self):
        storage = InMemoryObjectStorage()
        self.use_backends(storage=storage)
        response = self.client.post(
            "/api/photos", files={"file": ("a.jpg", b"jpeg-bytes", "image/jpeg")}
        )
        self.assertEqual(response.status_code, 200)
        url = response.json()["data"]["url"]
        self.assertTrue(url.startswith(f"{storage.base_url}/uploads/"))
        self.assertTrue(url.endswith("-a.jpg"))
        ((key, (content_type, data)),) = storage.stored_objects.items()
        self.assertEqual(content_type, "image/jpeg")
        self.assertEqual(data, b"jpeg-bytes")

    def test_multipart_without_file(self):
        response = self.client.post(
            "/api/photos", files={"other": ("a.txt", b"x", "text/plain")}
        )
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["error"], "No file uploaded")

    def test_unsupported_content_type(self):
        response = self.client.post(
            "/api/photos", content=b"hello", headers={"content-type": "text/plain"}
        )
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["error"], "Invalid content type")

    def test_list_is_sorted_newest_first(self):
        for created_at in (
            "2024-05-02T00:00:00.000Z",
            "2024-05-01T00:00:00.000Z",
            "2024-05-03T00:00:00.000Z",
        ):
            self.client.post(
                "/api/photos", json={"url": f"https://cdn.test/{created_at}", "created_at": created_at}
            )
        stamps = [p["created_at"] for p in self.client.get("/api/photos").json()]
        self.assertEqual(stamps, sorted(stamps, reverse=True))
        self.assertEqual(len(stamps), 3)

    def test_delete_photo(self):
        data = self.client.post("/api/photos", json={"url": "https://cdn.test/a.jpg"}).json()["data"]
        self.assertEqual(self.delete("/api/photos", {"id": "nope"}).status_code, 404)
        self.assertEqual(self.delete("/api/photos", {}).status_code, 400)
        response = self.delete("/api/photos", {"id": data["id"]})
        self.assertEqual(response.json(), {"success": True})
        self.assertEqual(self.client.get("/api/photos").json(), [])

    def test_table_store_is_preferred(self):
        settings = Settings(
            _env_file=None,
            database_url=f"sqlite:///{Path(self.tmp.name) / 'photos.db'}",
        )
        store = InMemoryDocumentStore()
        self.use_backends(document_store=store, settings=settings)

        data = self.client.post("/api/photos", json={"url": "https://cdn.test/a.jpg"}).json()["data"]
        self.assertRegex(data["id"], r"^[0-9a-f]{32}$")
        self.assertEqual(store.find_all("photos"), [])
        self.assertEqual(self.local.get_photos(), [])
        self.assertEqual([p["id"] for p in self.client.get("/api/photos").json()], [data["id"]])

    def test_photo_shape_is_identical_across_backends(self):
        local_photo = self.client.post("/api/photos", json={"url": "u"}).json()["data"]
        self.use_backends(document_store=InMemoryDocumentStore())
        document_photo = self.client.post("/api/photos", json={"url": "u"}).json()["data"]
        self.assertEqual(set(local_photo), set(document_photo))

    def test_failing_table_falls_through_to_document_store(self):
        settings = Settings(
            _env_file=None,
            database_url=f"sqlite:///{Path(self.tmp.name) / 'photos.db'}",
        )
        store = InMemoryDocumentStore()
        self.use_backends(document_store=store, settings=settings)
        self.assertEqual(self.client.get("/api/health").json()["backends"]["photos"],
                         ["table", "document", "local"])

        error = RuntimeError("server closed the connection")
        with patch.object(SqlPhotoBackend, "insert_photo", side_effect=error), \
                patch.object(SqlPhotoBackend, "list_photos", side_effect=error):
            response = self.client.post("/api/photos", json={"url": "https://cdn.test/a.jpg"})
            self.assertEqual(response.status_code, 200)
            data = response.json()["data"]
            self.assertRegex(data["id"], OBJECT_ID)
            self.assertEqual(len(store.find_all("photos")), 1)
            self.assertEqual(self.local.get_photos(), [])

            listed = self.client.get("/api/photos")
        self.assertEqual(listed.status_code, 200)
        self.assertEqual(listed.json(), [data])

    def test_malformed_stored_photos_are_skipped(self):
        self.local.save_photos(
            [
                {"id": 1, "url": "u"},
                {"id": 2, "url": "https://cdn.test/b.jpg", "category": 7,
                 "created_at": "2024-01-01T00:00:00.000Z"},
                {"id": 3, "url": None, "created_at": "2024-01-02T00:00:00.000Z"},
            ]
        )
        response = self.client.get("/api/photos")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(
            response.json(),
            [{"id": "2", "url": "https://cdn.test/b.jpg", "category": "Portrait",
              "created_at": "2024-01-01T00:00:00.000Z"}],
        )

    def test_delete_removes_uploaded_object(self):
        storage = InMemoryObjectStorage()
        self.use_backends(storage=storage)
        data = self.client.post(
            "/api/photos", files={"file": ("my photo #2.jpg", b"jpeg-bytes", "image/jpeg")}
        ).json()["data"]
        self.assertTrue(data["url"].endswith("-my%20photo%20%232.jpg"))
        (key,) = storage.stored_objects
        self.assertTrue(key.endswith("-my photo #2.jpg"))

        response = self.delete("/api/photos", {"id": data["id"]})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(storage.stored_objects, {})

    def test_delete_leaves_foreign_objects_alone(self):
        storage = InMemoryObjectStorage()
        storage.stored_objects["uploads/1-a.jpg"] = ("image/jpeg", b"x")
        self.use_backends(storage=storage)
        data = self.client.post("/api/photos", json={"url": "https://cdn.test/a.jpg"}).json()["data"]

        self.assertEqual(self.delete("/api/photos", {"id": data["id"]}).status_code, 200)
        self.assertEqual(list(storage.stored_objects), ["uploads/1-a.jpg"])

    def test_object_removal_failure_does_not_fail_delete(self):
        storage = InMemoryObjectStorage()
        self.use_backends(storage=storage)
        data = self.client.post(
            "/api/photos", files={"file": ("a.jpg", b"jpeg-bytes", "image/jpeg")}
        ).json()["data"]

        with patch.object(InMemoryObjectStorage, "delete", side_effect=RuntimeError("denied")):
            response = self.delete("/api/photos", {"id": data["id"]})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(self.client.get("/api/photos").json(), [])


class ProfileApiTests(ApiTestCase):
    def test_defaults_without_database(self):
        response = self.client.get("/api/profile")
        self.assertEqual(
            response.json(),
            {"profileImage": None, "name": "Roop", "title": DEFAULT_PROFILE_TITLE, "bio": []},
        )

    def test_update_without_database(self):
        response = self.client.post("/api/profile", json={"name": "New Name"})
        self.assertEqual(response.status_code, 500)
        body = response.json()
        self.assertEqual(body["error"], "MongoDB not configured")
        self.assertIn("MONGODB_URI", body["details"])

    def test_update_requires_json(self):
        self.use_backends(document_store=InMemoryDocumentStore())
        response = self.client.post("/api/profile", data={"name": "x"})
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["error"], "Invalid content type")

    def test_upsert_keeps_a_single_profile(self):
        store = InMemoryDocumentStore()
        self.use_backends(document_store=store)

        response = self.client.post("/api/profile", json={"name": "New Name"})
        self.assertEqual(
            response.json(), {"success": True, "message": "Profile updated successfully"}
        )
        self.client.post("/api/profile", json={"bio": ["One", "Two"]})

        profile = self.client.get("/api/profile").json()
        self.assertEqual(profile["name"], "New Name")
        self.assertEqual(profile["bio"], ["One", "Two"])
        self.assertEqual(profile["title"], DEFAULT_PROFILE_TITLE)
        self.assertEqual(len(store.collections["profile"]), 1)
        self.assertIn("updated_at", store.collections["profile"][0])

    def test_store_failure_on_read_serves_defaults(self):
        store = MagicMock()
        store.find_first.side_effect = RuntimeError("timeout")
        self.use_backends(document_store=store)
        self.assertEqual(self.client.get("/api/profile").json()["name"], "Roop")

    def test_store_failure_on_write_is_reported(self):
        store = MagicMock()
        store.update_first.side_effect = RuntimeError("not primary")
        self.use_backends(document_store=store)
        response = self.client.post("/api/profile", json={"name": "x"})
        self.assertEqual(response.status_code, 500)
        self.assertEqual(response.json()["error"], "Database error")
        self.assertEqual(response.json()["details"], "not primary")

    def test_stored_fields_of_the_wrong_type_fall_back_to_defaults(self):
        store = InMemoryDocumentStore()
        store.insert_one("profile", {"name": "X", "bio": "one paragraph"})
        self.use_backends(document_store=store)

        response = self.client.get("/api/profile")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["name"], "X")
        self.assertEqual(response.json()["bio"], ["one paragraph"])

        store.update_first("profile", {"name": 5, "title": None, "bio": {"a": 1},
                                       "profileImage": ["x"]})
        self.assertEqual(
            self.client.get("/api/profile").json(),
            {"profileImage": None, "name": "Roop", "title": DEFAULT_PROFILE_TITLE, "bio": []},
        )


class HealthAndPageTests(ApiTestCase):
    def test_health_lists_active_backends(self):
        self.use_backends(document_store=InMemoryDocumentStore(), storage=InMemoryObjectStorage())
        backends = self.client.get("/api/health").json()["backends"]
        self.assertEqual(backends["contact"], ["document", "local"])
        self.assertEqual(backends["photos"], ["document", "local"])
        self.assertEqual(backends["uploads"], "object-storage")
        self.assertEqual(backends["profile"], "document")

    def test_health_reports_database_status(self):
        self.assertEqual(self.client.get("/api/health").json()["database"], "not configured")

        self.use_backends(document_store=InMemoryDocumentStore())
        self.assertEqual(self.client.get("/api/health").json()["database"], "ok")

        store = MagicMock()
        store.ping.side_effect = RuntimeError("no primary")
        self.use_backends(document_store=store)
        response = self.client.get("/api/health")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["database"], "unreachable")

    def test_home_page(self):
        response = self.client.get("/")
        self.assertEqual(response.status_code, 200)
        self.assertIn("text/html", response.headers["content-type"])
        for text in ("RoopSnap", "Weddings", "Starting at $3000", "332-201-7020"):
            self.assertIn(text, response.text)


if __name__ == "__main__":
    unittest.main()
