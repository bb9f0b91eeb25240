"""
kdeploy - Raspberry Pi kernel build, transfer and install pipeline

A command-line interface for cross-building a Linux kernel, staging it with
its firmware and pushing it to a Raspberry Pi, then installing it on the
device with timestamped backups of everything it replaces.
"""
import argparse
import sys

__version__ = "1.0.0"

def main():
    """Main CLI entry point"""
    from kdeploy.commands import build, transfer, install

    parser = argparse.ArgumentParser(
        prog='kdeploy',
        description='kdeploy: Raspberry Pi kernel build/transfer/install pipeline',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog='''
Examples:
  kdeploy build                     # Cross-build kernel + modules (build host)
  kdeploy build -j 8                # Same, with 8 parallel make jobs
  kdeploy transfer                  # Stage and rsync to the Pi (build host)
  kdeploy install 6.1.21            # Install ./6.1.21 (on the Pi, as root)

Exit status:
  11 required input missing   12 precondition failed
  13 filesystem/copy failed   14 build tool failed
        '''
    )
    parser.add_argument('--version', action='version', version=f'%(prog)s {__version__}')

    subparsers = parser.add_subparsers(dest='command', help='Command to execute')

    # Build command
    build_parser = subparsers.add_parser('build', help='Cross-build kernel and modules')
    build.setup_parser(build_parser)

    # Transfer command
    transfer_parser = subparsers.add_parser('transfer', help='Stage files and push them to the target')
    transfer.setup_parser(transfer_parser)

    # Install command
    install_parser = subparsers.add_parser('install', help='Install a transferred kernel on the target')
    install.setup_parser(install_parser)

    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        sys.exit(1)

    # Dispatch to command handler
    try:
        if args.command == 'build':
            sys.exit(build.execute(args))
        elif args.command == 'transfer':
            sys.exit(transfer.execute(args))
        elif args.command == 'install':
            sys.exit(install.execute(args))
    except KeyboardInterrupt:
        print("\n\nInterrupted by user")
        sys.exit(130)
    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        import traceback
        traceback.print_exc()
        sys.exit(1)
