"""Transfer command - stage build output and firmware, push to the target"""
from kdeploy.core import (
    ConsoleLogger,
    RealFileSystemService,
    SubprocessExecutor,
    SystemEnvironmentProvider,
    SystemToolLocator,
    YamlConfigLoader,
)
from kdeploy.deploy import RsyncTransport
from kdeploy.errors import StageError
from kdeploy.stages.stager import KernelStager
from kdeploy.utils.config import load_settings_file, load_transfer_config, section


def setup_parser(parser):
    """Setup argument parser for transfer command"""
    parser.add_argument(
        '--config',
        help='YAML settings file (environment variables take precedence)'
    )
    parser.add_argument(
        '--verbose', '-v',
        action='store_true',
        help='Show the rsync commands being run'
    )


def execute(args, env_provider=None, filesystem=None, process_executor=None,
            tool_locator=None, logger=None):
    """Execute transfer command"""
    env_provider = env_provider or SystemEnvironmentProvider()
    filesystem = filesystem or RealFileSystemService()
    process_executor = process_executor or SubprocessExecutor()
    tool_locator = tool_locator or SystemToolLocator()
    logger = logger or ConsoleLogger(verbose=getattr(args, 'verbose', False))

    try:
        settings = load_settings_file(getattr(args, 'config', None), YamlConfigLoader(filesystem), filesystem)
        config = load_transfer_config(env_provider.get_environ(), section(settings, 'transfer', 'build'))

        transport = RsyncTransport(process_executor, logger, ssh_port=config.target.ssh_port)
        stager = KernelStager(config, filesystem, process_executor, tool_locator, transport, logger)
        stager.run()
    except StageError as e:
        logger.error(str(e))
        return e.exit_code

    return 0
