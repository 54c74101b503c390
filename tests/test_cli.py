import unittest
from unittest.mock import patch

from pihole_unifi.exceptions import AuthError, AuthFailed, SourceUnavailable
from pihole_unifi.pihole_unifi_sync import EXIT_FATAL, EXIT_INTERRUPTED, EXIT_OK, build_parser, main


@patch('pihole_unifi.pihole_unifi_sync.load_env_file')
@patch('pihole_unifi.pihole_unifi_sync.load_app_config', return_value={"evaluation_only": False})
@patch('pihole_unifi.pihole_unifi_sync.sync_pihole_to_unifi')
class TestMain(unittest.TestCase):

    def test_success_exit_code(self, mock_sync, mock_load_config, mock_load_env):
        self.assertEqual(main(["--no-pause"]), EXIT_OK)
        mock_sync.assert_called_once_with({"evaluation_only": False})

    def test_source_failure_exit_code(self, mock_sync, mock_load_config, mock_load_env):
        mock_sync.side_effect = SourceUnavailable("Pi-hole returned no custom DNS records")
        self.assertEqual(main(["--no-pause"]), 1603)

    def test_auth_failures_exit_code(self, mock_sync, mock_load_config, mock_load_env):
        for error in (AuthFailed("HTTP 401"), AuthError("HTTP 403")):
            mock_sync.side_effect = error
            self.assertEqual(main(["--no-pause"]), EXIT_FATAL)

    def test_unexpected_exception_exit_code(self, mock_sync, mock_load_config, mock_load_env):
        mock_sync.side_effect = RuntimeError("boom")
        self.assertEqual(main(["--no-pause"]), EXIT_FATAL)

    def test_flags_are_passed_to_config(self, mock_sync, mock_load_config, mock_load_env):
        main(["-EvaluationOnly", "-TestRecord", "--unifi-site", "lab", "--no-pause"])

        overrides = mock_load_config.call_args.args[0]
        self.assertTrue(overrides["evaluation_only"])
        self.assertTrue(overrides["test_record"])
        self.assertEqual(overrides["unifi_site"], "lab")

    @patch('builtins.input')
    def test_waits_for_acknowledgement_on_terminal(self, mock_input, mock_sync, mock_load_config, mock_load_env):
        mock_sync.side_effect = SourceUnavailable("down")
        with patch('pihole_unifi.pihole_unifi_sync.sys.stdin') as mock_stdin:
            mock_stdin.isatty.return_value = True
            self.assertEqual(main([]), EXIT_FATAL)

        mock_input.assert_called_once()

    def test_keyboard_interrupt_exit_code(self, mock_sync, mock_load_config, mock_load_env):
        mock_sync.side_effect = KeyboardInterrupt
        self.assertEqual(main(["--no-pause"]), EXIT_INTERRUPTED)

    @patch('builtins.input')
    def test_no_pause_when_stdin_is_not_a_terminal(self, mock_input, mock_sync, mock_load_config, mock_load_env):
        mock_sync.side_effect = SourceUnavailable("down")
        with patch('pihole_unifi.pihole_unifi_sync.sys.stdin') as mock_stdin:
            mock_stdin.isatty.return_value = False
            self.assertEqual(main([]), EXIT_FATAL)

        mock_input.assert_not_called()


class TestParser(unittest.TestCase):

    def test_flags_default_to_unset(self):
        args = build_parser().parse_args([])
        self.assertIsNone(args.evaluation_only)
        self.assertIsNone(args.test_record)
        self.assertFalse(args.no_pause)

    def test_long_flag_names(self):
        args = build_parser().parse_args(["--evaluation-only", "--test-record", "--pihole-token", "abc"])
        self.assertTrue(args.evaluation_only)
        self.assertTrue(args.test_record)
        self.assertEqual(args.pihole_api_token, "abc")


if __name__ == '__main__':
    unittest.main()
