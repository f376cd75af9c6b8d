import io
import unittest
from unittest import mock

from remote_gateway import cli
from remote_gateway.ssh import SSHGateway

from fakes import FakeTransport


class CLITests(unittest.TestCase):
    def setUp(self) -> None:
        self.transport = FakeTransport()
        real_init = SSHGateway.__init__
        transport = self.transport

        def init(gateway, *args, **kwargs):
            kwargs["transport"] = transport
            real_init(gateway, *args, **kwargs)

        patcher = mock.patch.object(SSHGateway, "__init__", init)
        patcher.start()
        self.addCleanup(patcher.stop)
        missing = mock.patch("remote_gateway.cli.load_config", side_effect=FileNotFoundError)
        missing.start()
        self.addCleanup(missing.stop)

    def test_runs_command_and_returns_remote_status(self) -> None:
        self.transport.script("uname -a", ["Linux\n"], exit_code=0)
        with mock.patch("sys.stdout", new_callable=io.StringIO) as out:
            rc = cli.main(["--host", "h:2222", "--user", "root", "--password", "pw", "uname", "-a"])
        self.assertEqual(rc, 0)
        self.assertEqual(out.getvalue(), "Linux\n")
        self.assertEqual(self.transport.calls[0], ("open", "h", 2222, 10))
        self.assertIn("close", self.transport.names())

    def test_propagates_non_zero_status(self) -> None:
        self.transport.script("exit 3", [], exit_code=3)
        rc = cli.main(["--host", "h", "--user", "root", "--password", "pw", "--", "exit", "3"])
        self.assertEqual(rc, 3)

    def test_gateway_failure_exit_code(self) -> None:
        with mock.patch("sys.stderr", new_callable=io.StringIO) as err:
            rc = cli.main(["--host", "h", "--user", "root", "true"])
        self.assertEqual(rc, cli.GATEWAY_FAILURE)
        self.assertIn("No usable credential", err.getvalue())

    def test_login_rejected(self) -> None:
        self.transport.accept_login = False
        with mock.patch("sys.stderr", new_callable=io.StringIO) as err:
            rc = cli.main(["--host", "h", "--user", "bob", "--password", "x", "true"])
        self.assertEqual(rc, cli.GATEWAY_FAILURE)
        self.assertIn("bob@h", err.getvalue())


if __name__ == "__main__":
    unittest.main()
