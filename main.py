#!/usr/bin/env python3
import argparse
import sys
from pathlib import Path

from loguru import logger

from drone_teleop.app_settings import AppSettings
from drone_teleop.errors import ConfigStoreError, SchemaError
from drone_teleop.logger import setup_logging
from drone_teleop.settings import config_from_json, config_to_json, default_config
from drone_teleop.store import ConfigStore


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Configuración del cliente de teleoperación del dron")
    parser.add_argument("--config", type=Path, help="Ruta del fichero de configuración (JSON)")
    parser.add_argument("--log-level", default="INFO", help="DEBUG | INFO | WARNING | ERROR")
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("show", help="Muestra la configuración actual")
    sub.add_parser("default", help="Muestra la configuración por defecto")
    sub.add_parser("reset", help="Escribe la configuración por defecto")

    p_server = sub.add_parser("set-server", help="Cambia ip / puertos")
    p_server.add_argument("--ip")
    p_server.add_argument("--stream-port", type=int)
    p_server.add_argument("--control-port", type=int)

    p_validate = sub.add_parser("validate", help="Valida un fichero JSON de configuración")
    p_validate.add_argument("file", type=Path)

    p_serve = sub.add_parser("serve", help="Arranca la API de ajustes")
    p_serve.add_argument("--host")
    p_serve.add_argument("--port", type=int)
    return parser


def app_settings_from_args(args) -> AppSettings:
    overrides = {"log_level": args.log_level}
    if args.config:
        overrides["config_path"] = args.config
    if getattr(args, "host", None):
        overrides["host"] = args.host
    if getattr(args, "port", None):
        overrides["port"] = args.port
    return AppSettings(**overrides)


def print_issues(err: SchemaError):
    for issue in err.issues:
        line = f"  [{issue.kind}] {issue.location}: {issue.message}"
        if issue.expected:
            line += f" (expected {issue.expected})"
        print(line, file=sys.stderr)


def run(args) -> int:
    settings = app_settings_from_args(args)
    store = ConfigStore(settings.config_path)

    if args.command == "default":
        print(config_to_json(default_config()))
        return 0

    if args.command == "show":
        print(config_to_json(store.load()))
        return 0

    if args.command == "reset":
        store.reset()
        logger.success(f"Configuración por defecto escrita en {store.path}")
        return 0

    if args.command == "set-server":
        current = store.load()
        config = store.update_server_settings(
            ip=args.ip if args.ip is not None else current.ip,
            stream_port=args.stream_port if args.stream_port is not None else current.stream_port,
            control_port=args.control_port if args.control_port is not None else current.control_port,
        )
        print(config_to_json(config))
        return 0

    if args.command == "validate":
        try:
            config_from_json(args.file.read_bytes())
        except OSError as e:
            logger.error(f"No se pudo leer {args.file}: {e}")
            return 1
        except SchemaError as e:
            logger.error(f"{args.file}: configuración inválida")
            print_issues(e)
            return 1
        logger.success(f"{args.file}: OK")
        return 0

    if args.command == "serve":
        import uvicorn
        from drone_teleop.server import create_app

        app = create_app(settings)
        uvicorn.run(app, host=settings.host, port=settings.port, log_level=settings.log_level.lower())
        return 0

    return 2


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(args.log_level)
    try:
        return run(args)
    except SchemaError as e:
        logger.error(f"Configuración inválida: {e}")
        print_issues(e)
        return 1
    except ConfigStoreError as e:
        logger.error(str(e))
        return 1


if __name__ == "__main__":
    sys.exit(main())
