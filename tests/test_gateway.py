import unittest

from remote_gateway.config import AppConfig
from remote_gateway.ssh import (
    AgentAuth,
    AuthConfigurationError,
    CommandExecution,
    CommandInProgressError,
    CommandStateError,
    HostSpecError,
    LoginError,
    PasswordAuth,
    SSHCredentials,
    SSHGateway,
    UnsupportedOperationError,
)

from fakes import FakeKeySource, FakeTransport


def make_gateway(host="example.com", credentials=None, timeout=10, transport=None):
    transport = transport or FakeTransport()
    gateway = SSHGateway(
        host,
        credentials or SSHCredentials(password="secret"),
        FakeKeySource(),
        timeout,
        transport=transport,
    )
    return gateway, transport


class SessionTests(unittest.TestCase):
    def test_connection_is_created_once(self) -> None:
        gateway, transport = make_gateway("[2001:db8::1]:2222", timeout=5)
        first = gateway.get_connection()
        second = gateway.get_connection()
        self.assertIs(first, second)
        self.assertEqual(transport.calls, [("open", "2001:db8::1", 2222, 5)])

    def test_connect_logs_in_with_selected_authenticator(self) -> None:
        gateway, transport = make_gateway(credentials=SSHCredentials(agent=True, password="x"))
        self.assertTrue(gateway.connect("deploy"))
        login = [call for call in transport.calls if call[0] == "login"]
        self.assertEqual(len(login), 1)
        self.assertEqual(login[0][1], "deploy")
        self.assertIsInstance(login[0][2], AgentAuth)
        self.assertEqual(gateway.username, "deploy")

    def test_password_login(self) -> None:
        gateway, transport = make_gateway()
        gateway.connect("root")
        self.assertEqual(transport.calls[-1], ("login", "root", PasswordAuth(password="secret")))

    def test_rejected_login_raises_with_context(self) -> None:
        gateway, _ = make_gateway("10.0.0.5", transport=FakeTransport(accept_login=False))
        with self.assertRaises(LoginError) as ctx:
            gateway.connect("deploy")
        self.assertEqual(ctx.exception.username, "deploy")
        self.assertEqual(ctx.exception.host, "10.0.0.5")
        self.assertIn("deploy@10.0.0.5", str(ctx.exception))

    def test_missing_credentials_fail_before_network(self) -> None:
        gateway, transport = make_gateway(credentials=SSHCredentials())
        with self.assertRaises(AuthConfigurationError):
            gateway.connect("deploy")
        self.assertEqual(transport.calls, [])

    def test_malformed_host_fails_at_construction(self) -> None:
        with self.assertRaises(HostSpecError):
            make_gateway("example.com:port")

    def test_connected_has_no_side_effects(self) -> None:
        gateway, transport = make_gateway()
        self.assertFalse(gateway.connected())
        self.assertEqual(transport.calls, [])
        gateway.connect("root")
        self.assertTrue(gateway.connected())

    def test_set_timeout_updates_live_session(self) -> None:
        gateway, transport = make_gateway(timeout=10)
        gateway.connect("root")
        handle = gateway.get_connection()
        gateway.set_timeout(30)
        self.assertEqual(handle.timeout, 30)
        self.assertEqual(gateway.timeout, 30)
        self.assertEqual(transport.names().count("open"), 1)

    def test_set_timeout_before_session_applies_at_open(self) -> None:
        gateway, transport = make_gateway(timeout=10)
        gateway.set_timeout(0)
        self.assertNotIn("set_timeout", transport.names())
        gateway.get_connection()
        self.assertEqual(transport.calls[0], ("open", "example.com", 22, 0))

    def test_disconnect_then_reconnect_creates_new_session(self) -> None:
        gateway, transport = make_gateway()
        gateway.connect("root")
        old = gateway.get_connection()
        gateway.disconnect()
        self.assertTrue(old.closed)
        self.assertFalse(gateway.connected())
        self.assertIsNone(gateway.username)
        gateway.connect("root")
        gateway.run("true")
        self.assertIsNot(gateway.get_connection(), old)
        self.assertEqual(len(transport.handles), 2)

    def test_disconnect_is_idempotent(self) -> None:
        gateway, transport = make_gateway()
        gateway.disconnect()
        gateway.connect("root")
        gateway.disconnect()
        gateway.disconnect()
        self.assertEqual(transport.names().count("close"), 1)

    def test_context_manager_disconnects(self) -> None:
        gateway, transport = make_gateway()
        with gateway:
            gateway.connect("root")
        self.assertIn("close", transport.names())
        self.assertFalse(gateway.connected())


class CommandTests(unittest.TestCase):
    def test_streams_chunks_then_status(self) -> None:
        gateway, transport = make_gateway()
        transport.script("echo hi", ["h", "i", "\n"], exit_code=0)
        gateway.connect("root")
        gateway.run("echo hi")
        self.assertEqual(gateway.next_line(), "h")
        self.assertEqual(gateway.next_line(), "i")
        self.assertEqual(gateway.next_line(), "\n")
        self.assertIsNone(gateway.next_line())
        self.assertEqual(gateway.status(), 0)

    def test_exhausted_output_stays_exhausted(self) -> None:
        gateway, transport = make_gateway()
        transport.script("ls", ["a\n"])
        gateway.connect("root")
        gateway.run("ls")
        self.assertEqual(list(gateway.execution), ["a\n"])
        reads = transport.names().count("read_next_chunk")
        self.assertIsNone(gateway.next_line())
        self.assertIsNone(gateway.next_line())
        self.assertEqual(transport.names().count("read_next_chunk"), reads)

    def test_status_is_none_until_output_drained(self) -> None:
        gateway, transport = make_gateway()
        transport.script("false", ["x"], exit_code=1)
        gateway.connect("root")
        gateway.run("false")
        self.assertIsNone(gateway.status())
        self.assertNotIn("exit_status", transport.names())
        self.assertEqual(gateway.next_line(), "x")
        self.assertIsNone(gateway.status())
        self.assertIsNone(gateway.next_line())
        self.assertEqual(gateway.status(), 1)
        self.assertEqual(gateway.status(), 1)
        self.assertEqual(transport.names().count("exit_status"), 1)

    def test_status_without_command(self) -> None:
        gateway, _ = make_gateway()
        self.assertIsNone(gateway.status())

    def test_next_line_without_command(self) -> None:
        gateway, _ = make_gateway()
        with self.assertRaises(CommandStateError):
            gateway.next_line()

    def test_run_rejects_second_command_while_output_pending(self) -> None:
        gateway, transport = make_gateway()
        transport.script("sleep 1", ["zzz"])
        gateway.connect("root")
        gateway.run("sleep 1")
        with self.assertRaises(CommandInProgressError) as ctx:
            gateway.run("uptime")
        self.assertEqual(ctx.exception.command, "sleep 1")
        self.assertEqual(transport.names().count("exec_streaming"), 1)

    def test_run_allowed_after_drain(self) -> None:
        gateway, transport = make_gateway()
        transport.script("first", ["1"])
        transport.script("second", ["2"], exit_code=3)
        gateway.connect("root")
        gateway.run("first")
        while gateway.next_line() is not None:
            pass
        gateway.run("second")
        self.assertEqual(gateway.execution.command, "second")
        self.assertEqual(gateway.next_line(), "2")
        self.assertIsNone(gateway.next_line())
        self.assertEqual(gateway.status(), 3)

    def test_disconnect_invalidates_in_flight_command(self) -> None:
        gateway, transport = make_gateway()
        transport.script("tail -f log", ["line\n", "line\n"])
        gateway.connect("root")
        gateway.run("tail -f log")
        execution = gateway.execution
        gateway.disconnect()
        with self.assertRaises(CommandStateError):
            gateway.next_line()
        self.assertIsNone(execution.status())
        # a fresh session accepts new commands
        gateway.connect("root")
        gateway.run("true")
        self.assertIsNot(gateway.execution, execution)

    def test_run_requires_login(self) -> None:
        gateway, transport = make_gateway()
        with self.assertRaises(CommandStateError) as ctx:
            gateway.run("id")
        self.assertIn("example.com", str(ctx.exception))
        self.assertEqual(transport.calls, [])

    def test_run_after_disconnect_requires_new_login(self) -> None:
        gateway, transport = make_gateway()
        gateway.connect("root")
        gateway.disconnect()
        self.assertIsNone(gateway.username)
        with self.assertRaises(CommandStateError):
            gateway.run("id")
        self.assertNotIn("exec_streaming", transport.names())

    def test_rejected_login_does_not_allow_run(self) -> None:
        gateway, transport = make_gateway(transport=FakeTransport(accept_login=False))
        with self.assertRaises(LoginError):
            gateway.connect("root")
        with self.assertRaises(CommandStateError):
            gateway.run("id")
        self.assertNotIn("exec_streaming", transport.names())

    def test_command_execution_counts_chunks(self) -> None:
        transport = FakeTransport()
        transport.script("cmd", ["a", "b"])
        handle = transport.open("h", 22, None)
        transport.exec_streaming(handle, "cmd")
        execution = CommandExecution("cmd", transport, handle)
        self.assertEqual("".join(execution), "ab")
        self.assertEqual(execution.chunks_read, 2)
        self.assertTrue(execution.exhausted)


class FileOperationTests(unittest.TestCase):
    def test_file_operations_are_unsupported(self) -> None:
        gateway, transport = make_gateway()
        operations = {
            "get": lambda: gateway.get("/remote", "/local"),
            "get_string": lambda: gateway.get_string("/remote"),
            "put": lambda: gateway.put("/local", "/remote"),
            "put_string": lambda: gateway.put_string("/remote", "data"),
            "exists": lambda: gateway.exists("/remote"),
            "rename": lambda: gateway.rename("/remote", "/other"),
            "delete": lambda: gateway.delete("/remote"),
        }
        for name, call in operations.items():
            with self.subTest(operation=name):
                with self.assertRaises(UnsupportedOperationError) as ctx:
                    call()
                self.assertEqual(ctx.exception.operation, name)
        self.assertEqual(transport.calls, [])

    def test_unsupported_is_distinct_from_other_failures(self) -> None:
        gateway, _ = make_gateway()
        with self.assertRaises(NotImplementedError):
            gateway.put("/a", "/b")


class FromConfigTests(unittest.TestCase):
    def test_builds_gateway_from_config(self) -> None:
        config = AppConfig.from_dict(
            {
                "connection": {"host": "db.internal", "port": 2200, "timeout": 3},
                "credentials": {"password": "pw"},
            }
        )
        transport = FakeTransport()
        gateway = SSHGateway.from_config(config, transport=transport)
        self.assertEqual(gateway.host.address, "db.internal")
        self.assertEqual(gateway.host.port, 2200)
        self.assertEqual(gateway.timeout, 3)
        gateway.connect("app")
        self.assertEqual(transport.calls[0], ("open", "db.internal", 2200, 3))

    def test_string_agent_value_selects_password(self) -> None:
        config = AppConfig.from_dict(
            {
                "connection": {"host": "db.internal"},
                "credentials": {"agent": "false", "password": "pw"},
            }
        )
        transport = FakeTransport()
        gateway = SSHGateway.from_config(config, transport=transport)
        gateway.connect("app")
        self.assertEqual(transport.calls[-1], ("login", "app", PasswordAuth(password="pw")))

    def test_missing_host_is_rejected(self) -> None:
        with self.assertRaises(HostSpecError):
            SSHGateway.from_config(AppConfig())


if __name__ == "__main__":
    unittest.main()
