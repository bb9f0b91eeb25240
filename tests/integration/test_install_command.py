"""Integration tests for the install command with real dependencies.

The live system is a scratch directory passed with --root, so the command
runs end to end without touching the host.
"""

import argparse
import pytest
import shutil
import tempfile
from pathlib import Path
from unittest.mock import Mock

from kdeploy.commands import install
from kdeploy.core import RealFileSystemService, SystemTimeProvider
from kdeploy.core.protocols import EnvironmentProvider, Logger


def populate(root: Path, files: dict) -> None:
    for relative, content in files.items():
        path = root / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(content)


LIVE_FILES = {
    'boot/bootcode.bin': b'bootcode v1',
    'boot/fixup.dat': b'fixup v1',
    'boot/start.elf': b'start v1',
    'boot/kernel.img': b'kernel 5.10.103',
    'opt/vc/bin/vcgencmd': b'vcgencmd v1',
    'lib/firmware/regulatory.db': b'regdb v1',
    'lib/modules/5.10.103+/modules.dep': b'deps 5.10.103',
}

INCOMING_FILES = {
    'boot/bootcode.bin': b'bootcode v2',
    'boot/fixup.dat': b'fixup v2',
    'boot/start.elf': b'start v2',
    'boot/zImage': b'kernel 6.1.21',
    'opt/vc/bin/vcgencmd': b'vcgencmd v2',
    'lib/firmware/regulatory.db': b'regdb v2',
    'lib/modules/6.1.21+/modules.dep': b'deps 6.1.21',
}


class TestInstallCommandIntegration:
    """Run install.execute() against a scratch root."""

    def setup_method(self):
        self.temp_dir = Path(tempfile.mkdtemp())
        self.root = self.temp_dir / 'root'
        self.incoming = self.temp_dir / 'home' / 'pi'
        populate(self.root, LIVE_FILES)
        populate(self.incoming / '6.1.21', INCOMING_FILES)
        (self.incoming / '6.1.21' / 'boot' / 'zImage').chmod(0o755)

        self.env = Mock(spec=EnvironmentProvider)
        self.env.get_environ.return_value = {}
        self.env.get_cwd.return_value = str(self.incoming)
        self.logger = Mock(spec=Logger)

    def teardown_method(self):
        if self.temp_dir.exists():
            shutil.rmtree(self.temp_dir)

    def run_install(self, sub_dir='6.1.21', **kwargs):
        args = argparse.Namespace(sub_dir=sub_dir, config=None, root=str(self.root), verbose=False)
        return install.execute(
            args,
            env_provider=self.env,
            filesystem=RealFileSystemService(),
            time_provider=SystemTimeProvider(),
            logger=self.logger,
            **kwargs
        )

    def test_install_from_working_directory(self):
        assert self.run_install() == 0

        boot = self.root / 'boot'
        assert (boot / 'kernel.img').read_bytes() == b'kernel 6.1.21'
        assert (boot / 'start.elf').read_bytes() == b'start v2'
        assert (self.root / 'lib' / 'modules' / '6.1.21+' / 'modules.dep').read_bytes() == b'deps 6.1.21'
        assert not (self.root / 'lib' / 'modules' / '5.10.103+').exists()

        backups = [p for p in boot.iterdir() if p.name.startswith('backup-')]
        assert len(backups) == 1
        timestamp = backups[0].name[len('backup-'):]
        assert len(timestamp) == 14 and timestamp.isdigit()
        assert (backups[0] / 'kernel.img').read_bytes() == b'kernel 5.10.103'
        assert (self.root / 'opt' / f'vc-{timestamp}' / 'bin' / 'vcgencmd').read_bytes() == b'vcgencmd v1'
        assert (self.root / 'lib' / f'firmware-{timestamp}' / 'regulatory.db').read_bytes() == b'regdb v1'
        assert (self.root / 'lib' / f'modules-{timestamp}' / '5.10.103+' / 'modules.dep').exists()

    def test_src_dir_from_environment(self):
        elsewhere = self.temp_dir / 'elsewhere'
        elsewhere.mkdir()
        self.env.get_cwd.return_value = str(elsewhere)
        self.env.get_environ.return_value = {'SRC_DIR': str(self.incoming)}

        assert self.run_install() == 0
        assert (self.root / 'boot' / 'kernel.img').read_bytes() == b'kernel 6.1.21'

    @pytest.mark.parametrize('sub_dir', [None, ''])
    def test_missing_sub_dir_prints_usage(self, sub_dir):
        assert self.run_install(sub_dir=sub_dir) == 11

        self.logger.error.assert_called_once()
        usage = self.logger.info.call_args[0][0]
        assert 'kdeploy install src-sub-dir' in usage
        assert str(self.incoming) in usage
        assert (self.root / 'boot' / 'kernel.img').read_bytes() == b'kernel 5.10.103'

    def test_missing_settings_file_does_not_print_usage(self):
        args = argparse.Namespace(sub_dir='6.1.21', config=str(self.temp_dir / 'absent.yaml'),
                                  root=str(self.root), verbose=False)

        status = install.execute(args, env_provider=self.env, filesystem=RealFileSystemService(),
                                 time_provider=SystemTimeProvider(), logger=self.logger)

        assert status == 11
        assert 'absent.yaml' in self.logger.error.call_args[0][0]
        logged = [c[0][0] for c in self.logger.info.call_args_list]
        assert not any('src-sub-dir' in message for message in logged)

    def test_unknown_sub_dir(self):
        assert self.run_install(sub_dir='6.6.0') == 12
        assert sorted(p.name for p in (self.root / 'boot').iterdir()) == [
            'bootcode.bin', 'fixup.dat', 'kernel.img', 'start.elf']

    def test_settings_file_target_root(self):
        settings = self.temp_dir / 'kdeploy.yaml'
        settings.write_text(f"install:\n  target_root: {self.root}\n")
        args = argparse.Namespace(sub_dir='6.1.21', config=str(settings), root=None, verbose=False)

        status = install.execute(args, env_provider=self.env, filesystem=RealFileSystemService(),
                                 time_provider=SystemTimeProvider(), logger=self.logger)

        assert status == 0
        assert (self.root / 'boot' / 'kernel.img').read_bytes() == b'kernel 6.1.21'
