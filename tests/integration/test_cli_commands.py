"""Integration tests for the CLI entry point and production implementations."""

import argparse
import pytest
from unittest.mock import Mock, patch

import kdeploy
from kdeploy.commands import build, transfer
from kdeploy.core import (
    ConsoleLogger,
    RealFileSystemService,
    SubprocessExecutor,
    SystemEnvironmentProvider,
    SystemToolLocator,
    YamlConfigLoader,
)
from kdeploy.core.protocols import EnvironmentProvider, Logger, ProcessExecutor


def create_env(environ=None, cwd='/tmp'):
    env = Mock(spec=EnvironmentProvider)
    env.get_environ.return_value = dict(environ or {})
    env.get_cwd.return_value = cwd
    return env


class TestMain:
    """Test argument parsing and dispatch."""

    def test_no_command_prints_help(self, capsys):
        with patch('sys.argv', ['kdeploy']):
            with pytest.raises(SystemExit) as excinfo:
                kdeploy.main()

        assert excinfo.value.code == 1
        assert 'build' in capsys.readouterr().out

    def test_version(self, capsys):
        with patch('sys.argv', ['kdeploy', '--version']):
            with pytest.raises(SystemExit) as excinfo:
                kdeploy.main()

        assert excinfo.value.code == 0
        assert kdeploy.__version__ in capsys.readouterr().out

    def test_dispatches_exit_code(self):
        with patch('sys.argv', ['kdeploy', 'build', '-j', '3']), \
             patch('kdeploy.commands.build.execute', return_value=14) as mock_execute:
            with pytest.raises(SystemExit) as excinfo:
                kdeploy.main()

        assert excinfo.value.code == 14
        assert mock_execute.call_args[0][0].jobs == 3

    def test_keyboard_interrupt_exits_130(self):
        with patch('sys.argv', ['kdeploy', 'install', '6.1.21']), \
             patch('kdeploy.commands.install.execute', side_effect=KeyboardInterrupt):
            with pytest.raises(SystemExit) as excinfo:
                kdeploy.main()

        assert excinfo.value.code == 130


class TestBuildCommand:
    """Test build.execute() configuration handling."""

    def test_missing_environment_exits_11(self):
        logger = Mock(spec=Logger)
        process = Mock(spec=ProcessExecutor)
        args = argparse.Namespace(config=None, jobs=None, verbose=False)

        status = build.execute(args, env_provider=create_env(), filesystem=RealFileSystemService(),
                               process_executor=process, logger=logger)

        assert status == 11
        assert 'KERNEL_SRC not set.' in logger.error.call_args[0][0]
        process.run.assert_not_called()

    def test_invalid_source_exits_12(self, tmp_path):
        logger = Mock(spec=Logger)
        process = Mock(spec=ProcessExecutor)
        env = create_env({'KERNEL_SRC': str(tmp_path), 'KERNEL_BUILD': str(tmp_path),
                          'CCPREFIX': 'arm-linux-gnueabihf-'})
        args = argparse.Namespace(config=None, jobs=None, verbose=False)

        status = build.execute(args, env_provider=env, filesystem=RealFileSystemService(),
                               process_executor=process, logger=logger)

        assert status == 12
        process.run.assert_not_called()

    def test_missing_settings_file_exits_11(self, tmp_path):
        logger = Mock(spec=Logger)
        args = argparse.Namespace(config=str(tmp_path / 'absent.yaml'), jobs=None, verbose=False)

        status = build.execute(args, env_provider=create_env(), filesystem=RealFileSystemService(),
                               process_executor=Mock(spec=ProcessExecutor), logger=logger)

        assert status == 11


class TestTransferCommand:
    """Test transfer.execute() configuration handling."""

    def test_missing_environment_exits_11(self):
        logger = Mock(spec=Logger)
        args = argparse.Namespace(config=None, verbose=False)

        status = transfer.execute(args, env_provider=create_env({'KERNEL_SRC': '/src/linux'}),
                                  filesystem=RealFileSystemService(),
                                  process_executor=Mock(spec=ProcessExecutor),
                                  tool_locator=SystemToolLocator(), logger=logger)

        assert status == 11
        assert 'KERNEL_BUILD not set.' in logger.error.call_args[0][0]


class TestProductionImplementations:
    """Real implementations used by the commands."""

    def test_filesystem_service_real_operations(self, tmp_path):
        fs = RealFileSystemService()
        source = tmp_path / 'src'
        (source / 'sub').mkdir(parents=True)
        (source / 'sub' / 'file.bin').write_bytes(b'payload')
        destination = tmp_path / 'dst'

        fs.mkdir(destination)
        fs.copy_tree_contents(source, destination)
        fs.copy_file(source / 'sub' / 'file.bin', destination)
        fs.rename(destination, tmp_path / 'moved')

        assert fs.read_bytes(tmp_path / 'moved' / 'sub' / 'file.bin') == b'payload'
        assert fs.is_file(tmp_path / 'moved' / 'file.bin')
        assert not fs.exists(destination)
        assert fs.list_dir(tmp_path / 'moved' / 'sub') == [tmp_path / 'moved' / 'sub' / 'file.bin']

    def test_mkdir_existing_directory_fails(self, tmp_path):
        with pytest.raises(FileExistsError):
            RealFileSystemService().mkdir(tmp_path)

    def test_subprocess_executor_status(self):
        result = SubprocessExecutor().run(['sh', '-c', 'echo out; exit 3'], capture_output=True)

        assert result.returncode == 3
        assert result.stdout == 'out\n'

    def test_subprocess_executor_missing_binary(self):
        result = SubprocessExecutor().run(['kdeploy-no-such-tool-xyz'], capture_output=True)

        assert result.returncode == 127

    def test_environment_provider(self, monkeypatch):
        monkeypatch.setenv('TGT_RPI', 'pi.local')

        assert SystemEnvironmentProvider().get_environ()['TGT_RPI'] == 'pi.local'

    def test_yaml_config_loader(self, tmp_path):
        path = tmp_path / 'settings.yaml'
        path.write_text("build:\n  jobs: 8\n")

        assert YamlConfigLoader(RealFileSystemService()).load_yaml(str(path)) == {'build': {'jobs': 8}}

    def test_console_logger_streams(self, capsys):
        logger = ConsoleLogger(verbose=False)

        logger.info("building")
        logger.debug("hidden")
        logger.error("failed")

        captured = capsys.readouterr()
        assert captured.out == "building\n"
        assert captured.err == "Error: failed\n"
