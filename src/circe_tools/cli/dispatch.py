"""
Command dispatch logic for circe-tools CLI.

Each handler rebuilds an argv list for the command's own ``main``, so every
command can also be run on its own.
"""

from __future__ import annotations


def dispatch_command(args) -> int:
    """Dispatch to the appropriate command handler."""
    if args.command == "nets":
        from .nets import main as nets_cmd

        sub_argv = [args.snapshot]
        if args.format:
            sub_argv.extend(["--format", args.format])
        if args.net:
            sub_argv.extend(["--net", args.net])
        return nets_cmd(sub_argv)

    elif args.command == "grab":
        from .grab_cmd import main as grab_cmd

        sub_argv = [args.snapshot]
        if args.vertices:
            sub_argv.extend(["--vertices", args.vertices])
        if args.devices:
            sub_argv.extend(["--devices", args.devices])
        if args.labels:
            sub_argv.extend(["--labels", args.labels])
        if args.dx:
            sub_argv.extend(["--dx", str(args.dx)])
        if args.dy:
            sub_argv.extend(["--dy", str(args.dy)])
        if args.rotate:
            sub_argv.extend(["--rotate", str(args.rotate)])
        if args.pivot:
            sub_argv.extend(["--pivot", args.pivot])
        if args.output:
            sub_argv.extend(["--output", args.output])
        if args.in_place:
            sub_argv.append("--in-place")
        if args.format:
            sub_argv.extend(["--format", args.format])
        if args.global_quiet:
            sub_argv.append("--quiet")
        return grab_cmd(sub_argv)

    elif args.command == "netlist":
        from .netlist_cmd import main as netlist_cmd

        sub_argv = [args.snapshot]
        if args.output:
            sub_argv.extend(["--output", args.output])
        if args.title:
            sub_argv.extend(["--title", args.title])
        return netlist_cmd(sub_argv)

    elif args.command == "check":
        from .check_cmd import main as check_cmd

        sub_argv = [args.snapshot]
        if args.format:
            sub_argv.extend(["--format", args.format])
        if args.global_quiet:
            sub_argv.append("--quiet")
        return check_cmd(sub_argv)

    elif args.command == "config":
        from .config_cmd import main as config_cmd

        sub_argv = []
        if args.show:
            sub_argv.append("--show")
        if args.init:
            sub_argv.append("--init")
        if args.paths:
            sub_argv.append("--paths")
        if args.user:
            sub_argv.append("--user")
        return config_cmd(sub_argv)

    return 1
