"""Install command - back up and replace boot files, firmware and modules on the target"""
from kdeploy.core import (
    ConsoleLogger,
    RealFileSystemService,
    SystemEnvironmentProvider,
    SystemTimeProvider,
    YamlConfigLoader,
)
from kdeploy.errors import EXIT_MISSING_INPUT, StageError
from kdeploy.stages.installer import KernelInstaller
from kdeploy.utils.config import load_install_config, load_settings_file, section

USAGE = """
Usage:
   kdeploy install src-sub-dir

where:
   src-sub-dir is the sub-directory of {base} from
               which the kernel, module and firmware files
               to be installed are located.
"""


def setup_parser(parser):
    """Setup argument parser for install command"""
    parser.add_argument(
        'sub_dir',
        nargs='?',
        help='Sub-directory of SRC_DIR (default: current directory) holding boot/, lib/ and opt/'
    )
    parser.add_argument(
        '--config',
        help='YAML settings file (environment variables take precedence)'
    )
    parser.add_argument(
        '--root',
        help='Root of the filesystem to install into (default: TARGET_ROOT or /)'
    )
    parser.add_argument(
        '--verbose', '-v',
        action='store_true',
        help='Show verbose output'
    )


def execute(args, env_provider=None, filesystem=None, time_provider=None, logger=None):
    """Execute install command"""
    env_provider = env_provider or SystemEnvironmentProvider()
    filesystem = filesystem or RealFileSystemService()
    time_provider = time_provider or SystemTimeProvider()
    logger = logger or ConsoleLogger(verbose=getattr(args, 'verbose', False))

    environ = env_provider.get_environ()
    if getattr(args, 'root', None):
        environ['TARGET_ROOT'] = args.root

    sub_dir = getattr(args, 'sub_dir', None)
    if not sub_dir:
        logger.error("Source sub-directory not given.")
        logger.info(USAGE.format(base=environ.get('SRC_DIR') or env_provider.get_cwd()))
        return EXIT_MISSING_INPUT

    try:
        settings = load_settings_file(getattr(args, 'config', None), YamlConfigLoader(filesystem), filesystem)
        config = load_install_config(
            environ,
            sub_dir,
            env_provider.get_cwd(),
            section(settings, 'install'),
        )

        installer = KernelInstaller(config, filesystem, time_provider, logger)
        installer.run()
    except StageError as e:
        logger.error(str(e))
        return e.exit_code

    return 0
