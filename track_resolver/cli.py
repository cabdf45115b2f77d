"""Command-line interface for track-resolver."""

import json
import logging
import shutil
import sys
from pathlib import Path
from typing import Optional

try:
    import click
except ImportError:
    print("Error: click not installed", file=sys.stderr)
    print("Install with: pip install click", file=sys.stderr)
    sys.exit(1)

from . import __version__
from .config import DEFAULT_CONFIG_PATH, Config
from .exceptions import ResolveError
from .resolver import TrackResolver
from .track import TrackDescriptor


class DefaultGroup(click.Group):
    """Click group that defaults to a specified command when no command is given."""

    def __init__(self, *args, **kwargs):
        self.default_command = kwargs.pop("default_command", None)
        super(DefaultGroup, self).__init__(*args, **kwargs)

    def parse_args(self, ctx, args):
        # If the first argument is not a known command and we have a default command,
        # treat it as the URL for the default command
        # BUT: don't redirect if it's a flag (starts with -) or if there are no args
        if (
            args
            and args[0] not in self.commands
            and self.default_command is not None
            and not args[0].startswith("-")
        ):
            args.insert(0, self.default_command)

        return super(DefaultGroup, self).parse_args(ctx, args)

    def resolve_command(self, ctx, args):
        # Group options may come before the URL (e.g. `-v <url>`)
        if (
            args
            and args[0] not in self.commands
            and self.default_command is not None
            and not args[0].startswith("-")
        ):
            args = [self.default_command] + list(args)

        return super(DefaultGroup, self).resolve_command(ctx, args)


def format_duration(descriptor: TrackDescriptor) -> str:
    if not descriptor.has_known_duration:
        return "unknown"
    seconds = descriptor.duration_ms // 1000
    hours, rest = divmod(seconds, 3600)
    minutes, seconds = divmod(rest, 60)
    if hours:
        return f"{hours}:{minutes:02d}:{seconds:02d}"
    return f"{minutes}:{seconds:02d}"


def load_config(config_path: Optional[str]) -> Config:
    return Config(Path(config_path)) if config_path else Config()


@click.group(cls=DefaultGroup, default_command="resolve", invoke_without_command=True)
@click.version_option(__version__)
@click.option("--verbose", "-v", is_flag=True, help="Show debug output")
@click.pass_context
def cli(ctx, verbose: bool):
    """Track Resolver - playable metadata for Reddit and TikTok videos."""
    if verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(name)s: %(message)s")

    # If no arguments provided and no command, show help
    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())
        ctx.exit()


def _resolve(resolver: TrackResolver, url: str):
    """Resolve URL or exit with the CLI's error codes."""
    try:
        track = resolver.load_item(url)
    except ResolveError as e:
        click.echo(f"❌ Error: {e}", err=True)
        sys.exit(1)

    if track is None:
        click.echo(f"❌ Unsupported URL: {url}", err=True)
        sys.exit(2)

    return track


@cli.command()
@click.argument("url")
@click.option("--json", "as_json", is_flag=True, help="Print the persisted track envelope as JSON")
@click.option("--config", "config_path", type=click.Path(), help="Config file to use")
def resolve(url: str, as_json: bool, config_path: Optional[str]):
    """Resolve URL into track metadata.

    Supports: Reddit video posts, TikTok videos and vm.tiktok.com short links.
    """
    resolver = TrackResolver(load_config(config_path))

    try:
        track = _resolve(resolver, url)

        if as_json:
            click.echo(json.dumps(resolver.encode_track(track), indent=2))
            return

        info = track.descriptor
        click.echo(f"✅ {info.title or '(untitled)'}")
        click.echo(f"   Source: {info.source_name}")
        click.echo(f"   Author: {info.author or '(unknown)'}")
        click.echo(f"   Duration: {format_duration(info)}")
        click.echo(f"   Identifier: {info.identifier}")
        click.echo(f"   URL: {info.uri}")
        if info.thumbnail_url:
            click.echo(f"   Thumbnail: {info.thumbnail_url}")
    finally:
        resolver.shutdown()


@cli.command()
@click.argument("url")
@click.option("--config", "config_path", type=click.Path(), help="Config file to use")
def probe(url: str, config_path: Optional[str]):
    """Resolve URL, open the media stream and show container details."""
    resolver = TrackResolver(load_config(config_path))

    try:
        track = _resolve(resolver, url)
        click.echo(f"🔗 Opening stream for: {track.descriptor.title or track.descriptor.identifier}")

        try:
            info = track.process(lambda container: container.probe())
        except ResolveError as e:
            click.echo(f"❌ Error: {e}", err=True)
            sys.exit(1)

        click.echo(f"✅ Codec: {info.codec_description or info.codec or 'unknown'}")
        click.echo(f"   Length: {info.length_seconds:.1f}s")
        click.echo(f"   Bitrate: {info.bitrate // 1000} kbps")
        click.echo(f"   Channels: {info.channels}")
        click.echo(f"   Sample rate: {info.sample_rate} Hz")
    finally:
        resolver.shutdown()


@cli.command("check-setup")
def check_setup():
    """Verify all dependencies are installed."""
    click.echo("🔍 Checking track-resolver dependencies...")
    click.echo()

    all_ok = True

    # Check requests
    try:
        import requests

        click.echo(f"✅ requests: {requests.__version__}")
    except ImportError:
        click.echo("❌ requests: Not installed", err=True)
        click.echo("   Install: pip install requests", err=True)
        all_ok = False

    # Check mutagen
    try:
        import mutagen

        click.echo(f"✅ mutagen: {mutagen.version_string}")
    except ImportError:
        click.echo("❌ mutagen: Not installed", err=True)
        click.echo("   Install: pip install mutagen", err=True)
        all_ok = False

    # Check PyYAML
    try:
        import yaml

        click.echo(f"✅ PyYAML: {yaml.__version__}")
    except ImportError:
        click.echo("❌ PyYAML: Not installed", err=True)
        click.echo("   Install: pip install pyyaml", err=True)
        all_ok = False

    click.echo(f"✅ click: {getattr(click, '__version__', 'Installed')}")

    # Check config
    if DEFAULT_CONFIG_PATH.exists():
        click.echo(f"✅ Configuration: {DEFAULT_CONFIG_PATH}")
    else:
        click.echo("ℹ️ Configuration: using built-in defaults")
        click.echo("   Run 'track-resolver init' to customize")

    click.echo()

    if all_ok:
        click.echo("🎉 All required dependencies are installed")
        click.echo()
        click.echo("Next steps:")
        click.echo("  Run: track-resolver resolve <url>")
    else:
        click.echo(
            "⚠️ Some dependencies are missing. Please install them first.", err=True
        )
        sys.exit(1)


@cli.command()
def init():
    """Initialize configuration file in ~/.config/track-resolver/."""
    config_path = DEFAULT_CONFIG_PATH
    config_dir = config_path.parent

    if config_path.exists():
        click.echo(f"✅ Config already exists: {config_path}")
        click.echo()
        click.echo("To reconfigure, either:")
        click.echo(f"  1. Edit: {config_path}")
        click.echo("  2. Delete and run 'track-resolver init' again")
        return

    example = Path(__file__).parent / "config.example.yaml"
    if not example.exists():
        click.echo(f"❌ Example config not found at {example}", err=True)
        click.echo("This might happen with certain installation methods.", err=True)
        sys.exit(1)

    config_dir.mkdir(parents=True, exist_ok=True)
    shutil.copy(example, config_path)

    click.echo(f"✅ Created config: {config_path}")
    click.echo()
    click.echo("📝 Configuration:")
    click.echo("  - Reddit and TikTok work immediately, no credentials needed")
    click.echo("  - Set http.timeout to bound slow API calls")
    click.echo()
    click.echo("✅ Ready! Try: track-resolver resolve <url>")


def main():
    """Main entry point."""
    cli()


if __name__ == "__main__":
    main()
