"""Build command - cross-compile kernel and modules on the build host"""
from kdeploy.core import (
    ConsoleLogger,
    RealFileSystemService,
    SubprocessExecutor,
    SystemEnvironmentProvider,
    YamlConfigLoader,
)
from kdeploy.errors import StageError
from kdeploy.stages.builder import KernelBuilder
from kdeploy.utils.config import load_build_config, load_settings_file, section


def setup_parser(parser):
    """Setup argument parser for build command"""
    parser.add_argument(
        '--config',
        help='YAML settings file (environment variables take precedence)'
    )
    parser.add_argument(
        '--jobs', '-j',
        type=int,
        default=None,
        help='Number of parallel make jobs (default: 5)'
    )
    parser.add_argument(
        '--verbose', '-v',
        action='store_true',
        help='Show the make commands being run'
    )


def execute(args, env_provider=None, filesystem=None, process_executor=None, logger=None):
    """Execute build command"""
    env_provider = env_provider or SystemEnvironmentProvider()
    filesystem = filesystem or RealFileSystemService()
    process_executor = process_executor or SubprocessExecutor()
    logger = logger or ConsoleLogger(verbose=getattr(args, 'verbose', False))

    try:
        settings = load_settings_file(getattr(args, 'config', None), YamlConfigLoader(filesystem), filesystem)
        environ = env_provider.get_environ()
        if getattr(args, 'jobs', None) is not None:
            environ['BUILD_JOBS'] = str(args.jobs)
        config = load_build_config(environ, section(settings, 'build'))

        builder = KernelBuilder(config, filesystem, process_executor, logger)
        builder.run()
    except StageError as e:
        logger.error(str(e))
        return e.exit_code

    return 0
