import threading
import unittest
from unittest import mock

import requests

from hostinfo.collaborators import (
    Container,
    EventsBroker,
    HttpServiceClient,
    MemoryStore,
    StaticIdentityMapping,
    StaticPluginRegistry,
    UnavailableServiceClient,
)
from hostinfo.errors import ServiceError


def _session(payload=None, error=None):
    response = mock.Mock()
    response.json.return_value = payload
    if isinstance(error, requests.HTTPError):
        response.raise_for_status.side_effect = error
    elif isinstance(error, ValueError):
        response.json.side_effect = error
    session = mock.Mock()
    if isinstance(error, requests.ConnectionError):
        session.get.side_effect = error
    else:
        session.get.return_value = response
    return session


class HttpServiceClientTests(unittest.TestCase):
    def test_revision_from_version_endpoint(self):
        session = _session({"version": "0.2.3", "revision": "03e5862"})
        client = HttpServiceClient("http://127.0.0.1:1234/", timeout=2.5, session=session)

        version = client.server_version()

        self.assertEqual(version.revision, "03e5862")
        self.assertEqual(version.version, "0.2.3")
        args, kwargs = session.get.call_args
        self.assertEqual(args[0], "http://127.0.0.1:1234/version")
        self.assertEqual(kwargs["timeout"], 2.5)

    def test_failures_become_service_errors(self):
        cases = {
            "connection": _session(error=requests.ConnectionError("refused")),
            "http status": _session(error=requests.HTTPError("503 Server Error")),
            "bad json": _session(error=ValueError("Expecting value")),
            "not a mapping": _session(["03e5862"]),
            "no revision": _session({"version": "0.2.3"}),
        }
        for name, session in cases.items():
            with self.subTest(case=name):
                client = HttpServiceClient("http://containerd", session=session)
                with self.assertRaises(ServiceError):
                    client.server_version()

    def test_unavailable_client_always_raises(self):
        with self.assertRaises(ServiceError) as ctx:
            UnavailableServiceClient("not configured").server_version()
        self.assertIn("not configured", str(ctx.exception))


class MemoryStoreTests(unittest.TestCase):
    def test_add_get_delete(self):
        store = MemoryStore([Container("a", "running")])
        store.add(Container("b", "paused"))
        self.assertEqual(store.size(), 2)
        self.assertEqual(store.get("b").state_string(), "paused")
        store.delete("a")
        self.assertIsNone(store.get("a"))
        self.assertEqual(store.size(), 1)

    def test_apply_all_visits_every_container(self):
        store = MemoryStore((Container(f"c{i}", "running") for i in range(100)), max_workers=4)
        seen = []
        lock = threading.Lock()

        def visit(container):
            with lock:
                seen.append(container.id)

        store.apply_all(visit)
        self.assertEqual(sorted(seen), sorted(f"c{i}" for i in range(100)))

    def test_apply_all_propagates_callback_errors(self):
        store = MemoryStore([Container("a")])

        def explode(_container):
            raise RuntimeError("boom")

        with self.assertRaises(RuntimeError):
            store.apply_all(explode)


class SmallCollaboratorTests(unittest.TestCase):
    def test_identity_mapping_parse(self):
        self.assertEqual(StaticIdentityMapping.parse("").remapped_root(), (0, 0))
        self.assertEqual(StaticIdentityMapping.parse("1000").remapped_root(), (1000, 1000))
        self.assertEqual(StaticIdentityMapping.parse("1000:2000").remapped_root(), (1000, 2000))

    def test_plugin_names_are_sorted(self):
        self.assertEqual(StaticPluginRegistry(["overlay", "bridge", "host"]).driver_names(), ["bridge", "host", "overlay"])

    def test_events_subscribers(self):
        broker = EventsBroker()
        received = []
        token = broker.subscribe(received.append)
        broker.subscribe(lambda _event: None)
        self.assertEqual(broker.subscribers_count(), 2)
        broker.publish({"status": "start"})
        self.assertEqual(received, [{"status": "start"}])
        broker.unsubscribe(token)
        self.assertEqual(broker.subscribers_count(), 1)


if __name__ == "__main__":
    unittest.main()
