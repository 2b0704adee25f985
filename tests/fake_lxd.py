"""
In-memory stand-in for the LXD API, speaking the same `call()` / `get_raw()`
contract as `LxdClient`. Operations complete immediately; failures are
injected per operation kind or per request.
"""

import hashlib
import itertools
import re
from urllib.parse import parse_qs, unquote, urlsplit

from image_builder.entities.exceptions import APIError, NotFoundError
from image_builder.infrastructure.lxd import LxdResponse


class FakeLxd:

    def __init__(self, members=None):
        self.members = members or []
        self.instances = {}
        self.images = {}
        self.aliases = {}
        self.operations = {}
        self.logs = {}

        self.calls = []
        self.executed = []
        self.deleted_instances = []

        # kind -> error message of the operation
        self.failing_operations = {}
        # (method, endpoint regex) -> exception raised by the request
        self.failing_requests = {}
        # argv -> (exit code, stdout, stderr)
        self.exec_handler = lambda argv: (0, "", "")
        self.bind_alias_on_publish = True

        self._ids = itertools.count(1)

    # -- helpers -----------------------------------------------------------

    def _operation(self, kind, metadata=None, on_success=None):
        operation_id = f"op-{next(self._ids)}"
        error = self.failing_operations.get(kind)

        if error is None and on_success:
            on_success()

        self.operations[operation_id] = {
            "id": operation_id,
            "description": kind,
            "status": "Failure" if error else "Success",
            "status_code": 400 if error else 200,
            "metadata": metadata or {},
            "err": error or "",
        }
        return LxdResponse(type="async", status_code=100, operation=f"/1.0/operations/{operation_id}")

    @staticmethod
    def _sync(metadata=None):
        return LxdResponse(type="sync", status_code=200, metadata=metadata)

    def count(self, method, pattern):
        return sum(1 for called_method, endpoint in self.calls if called_method == method and re.fullmatch(pattern, endpoint))

    # -- LxdClient contract ------------------------------------------------

    def call(self, method, endpoint, payload=None, *, data=None, headers=None, params=None):
        parts = urlsplit(endpoint)
        path = parts.path
        if path.startswith("/1.0/"):
            path = path[len("/1.0"):]
        query = {key: values[0] for key, values in parse_qs(parts.query).items()}
        query.update(params or {})

        self.calls.append((method, path))

        for (failing_method, pattern), exception in self.failing_requests.items():
            if failing_method == method and re.fullmatch(pattern, path):
                raise exception

        if method == "GET" and path == "/cluster/members":
            return self._sync(self.members)

        if path.startswith("/operations/"):
            operation_id = path.rsplit("/", 1)[-1]
            if operation_id not in self.operations:
                raise NotFoundError(404, "Operation not found", method, endpoint)
            return self._sync(self.operations[operation_id])

        match = re.fullmatch(r"/instances(?:/([^/]+)(/.*)?)?", path)
        if match:
            return self._instances(method, match.group(1), match.group(2) or "", payload, data, headers, query)

        match = re.fullmatch(r"/images/aliases/([^/]+)", path)
        if match and method == "GET":
            alias = match.group(1)
            if alias not in self.aliases:
                raise NotFoundError(404, "Image alias not found", method, endpoint)
            return self._sync({"name": alias, "target": self.aliases[alias]})

        match = re.fullmatch(r"/images/([0-9a-f]+)", path)
        if match and method == "DELETE":
            fingerprint = match.group(1)
            if fingerprint not in self.images:
                raise NotFoundError(404, "Image not found", method, endpoint)

            def remove():
                del self.images[fingerprint]
                for alias in [alias for alias, target in self.aliases.items() if target == fingerprint]:
                    del self.aliases[alias]

            return self._operation("delete", on_success=remove)

        if path == "/images" and method == "POST":
            return self._publish(payload)

        raise APIError(400, f"Unsupported request {method} {endpoint}", method, endpoint)

    def _instances(self, method, name, suffix, payload, data, headers, query):
        if name is None and method == "POST":
            name = payload["name"]
            if name in self.instances:
                raise APIError(409, "Instance already exists", method, "/instances")

            def created():
                self.instances[name] = {"status": "Stopped", "target": query.get("target"), "source": payload["source"], "files": {}}

            return self._operation("create", on_success=created)

        if name not in self.instances:
            raise NotFoundError(404, "Instance not found", method, f"/instances/{name}{suffix}")

        instance = self.instances[name]

        if method == "GET" and suffix == "":
            return self._sync({"name": name, "status": instance["status"], "location": instance["target"]})

        if method == "PUT" and suffix == "/state":
            action = payload["action"]
            if action == "stop" and instance["status"] == "Stopped":
                return self._already(action)
            status = {"start": "Running", "stop": "Stopped"}[action]
            return self._operation(action, on_success=lambda: instance.update(status=status))

        if method == "DELETE" and suffix == "":
            def deleted():
                del self.instances[name]
                self.deleted_instances.append(name)

            return self._operation("delete", on_success=deleted)

        if method == "POST" and suffix == "/exec":
            argv = payload["command"]
            self.executed.append(argv)
            exit_code, stdout, stderr = self.exec_handler(argv)

            output = {}
            if payload.get("record-output"):
                index = next(self._ids)
                output = {
                    "1": f"/1.0/instances/{name}/logs/exec-output/exec_{index}.stdout",
                    "2": f"/1.0/instances/{name}/logs/exec-output/exec_{index}.stderr",
                }
                self.logs[output["1"]] = stdout
                self.logs[output["2"]] = stderr

            return self._operation("exec", metadata={"return": exit_code, "output": output})

        if method == "POST" and suffix == "/files":
            instance["files"][unquote(query["path"])] = {"content": data, "headers": dict(headers or {})}
            return self._sync({})

        raise APIError(400, f"Unsupported instance request {method} {suffix}", method, f"/instances/{name}{suffix}")

    def _already(self, action):
        operation_id = f"op-{next(self._ids)}"
        self.operations[operation_id] = {
            "id": operation_id, "status": "Failure", "status_code": 400, "metadata": {},
            "err": f"The instance is already {'stopped' if action == 'stop' else 'running'}",
        }
        return LxdResponse(type="async", status_code=100, operation=f"/1.0/operations/{operation_id}")

    def _publish(self, payload):
        source = payload["source"]["name"]
        fingerprint = hashlib.sha256(f"{source}-{next(self._ids)}".encode()).hexdigest()

        def published():
            self.images[fingerprint] = {"source": source, "properties": payload.get("properties", {}), "public": payload.get("public")}
            if self.bind_alias_on_publish:
                for alias in payload.get("aliases", []):
                    self.aliases[alias["name"]] = fingerprint

        return self._operation("publish", metadata={"fingerprint": fingerprint}, on_success=published)

    def get_raw(self, endpoint):
        self.calls.append(("GET", endpoint))
        if endpoint not in self.logs:
            raise NotFoundError(404, "Log not found", "GET", endpoint)
        return self.logs[endpoint]

    def close(self):
        pass
