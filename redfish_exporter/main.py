#!/usr/bin/env python3

# -----------------------------------------------------------------------------
# Copyright (c) 2025 Redfish Exporter contributors
# Licensed under the MIT License. See LICENSE in project root for details.
# -----------------------------------------------------------------------------

"""
Entry point for the Redfish exporter.

Loads configuration, builds the metric descriptor registry once, and serves
scrape requests until interrupted. SIGHUP reloads the configuration file.
"""

import argparse
import logging
import os
import signal
import sys

from .config import ConfigError, HostCredentials, SafeConfig, load_env_config
from .metrics_config import build_descriptor_registry
from .server import create_server

FORMAT = '%(asctime)s - %(levelname)s - %(funcName)s - %(lineno)d - %(message)s'
DATEFMT = '%Y-%m-%dT%H:%M:%SZ'


def configure_logging(loglevel, logfile=None):
    log_level = getattr(logging, loglevel.upper())

    if logfile:
        logfile_dir = os.path.dirname(logfile) if os.path.dirname(logfile) else '.'
        if os.path.exists(logfile_dir) and os.access(logfile_dir, os.W_OK):
            try:
                logging.basicConfig(filename=logfile, level=log_level, format=FORMAT, datefmt=DATEFMT)
                logging.info('Logging to file: ' + logfile)
            except OSError as e:
                logging.basicConfig(level=log_level, format=FORMAT, datefmt=DATEFMT)
                logging.error(f'Failed to configure file logging to {logfile}: {e}')
                logging.warning('Falling back to console logging only')
        else:
            logging.basicConfig(level=log_level, format=FORMAT, datefmt=DATEFMT)
            logging.error(f'Logfile directory {logfile_dir} does not exist or is not writable')
            logging.warning('Falling back to console logging only')
    else:
        logging.basicConfig(level=log_level, format=FORMAT, datefmt=DATEFMT)

    # requests/urllib3 DEBUG output can include credentials
    requests_level = max(log_level, logging.INFO)
    logging.getLogger("requests").setLevel(level=requests_level)
    logging.getLogger("urllib3").setLevel(level=requests_level)


def parse_args(argv=None, env=None):
    parser = argparse.ArgumentParser(description="Export Redfish BMC inventory as Prometheus metrics")
    parser.add_argument('--config', type=str, default=env.CONFIG if env else None,
                        help='Path to YAML config file with scrape options and BMC credentials.')
    parser.add_argument('--listenAddress', type=str, default=env.LISTEN_ADDRESS if env else ':9610',
                        help='Address to listen on for scrapes (default: :9610).')
    parser.add_argument('--threads', type=int, default=env.THREADS if env else None,
                        help='Worker threads per fan-out level, overrides the config file.')
    parser.add_argument('--logfile', type=str, default=env.LOGFILE if env else None,
                        help='Path to logfile. If not provided, logs to console.')
    parser.add_argument('--loglevel', type=str, choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'],
                        default=(env.LOGLEVEL.upper() if env else 'INFO'),
                        help='Log level (default: INFO).')
    return parser.parse_args(argv)


def main(argv=None):
    env = load_env_config()
    CMD = parse_args(argv, env)
    configure_logging(CMD.loglevel, CMD.logfile)
    LOG = logging.getLogger(__name__)

    fallback = None
    if env.USERNAME and env.PASSWORD:
        fallback = HostCredentials(username=env.USERNAME, password=env.PASSWORD)

    overrides = {"threads": CMD.threads} if CMD.threads is not None else {}
    try:
        safe_config = SafeConfig(config_file=CMD.config, fallback=fallback, overrides=overrides)
        if CMD.config:
            safe_config.reload_config()
    except ConfigError as e:
        LOG.error(f"Error parsing configuration: {e}")
        sys.exit(1)
    if not CMD.config:
        LOG.warning("No config file given, only environment credentials are available")

    descriptors = build_descriptor_registry()
    LOG.info(f"Registered {len(descriptors)} metric descriptors")

    def reload_handler(signum, frame):
        try:
            safe_config.reload_config()
        except ConfigError as e:
            LOG.error(f"Error reloading config: {e}")

    if hasattr(signal, 'SIGHUP'):
        signal.signal(signal.SIGHUP, reload_handler)

    try:
        server = create_server(CMD.listenAddress, safe_config, descriptors)
    except (OSError, ValueError) as e:
        LOG.error(f"Failed to start HTTP server on {CMD.listenAddress}: {e}")
        sys.exit(1)

    try:
        server.serve_forever()
    except KeyboardInterrupt:
        LOG.info("Interrupted, shutting down")
    finally:
        server.server_close()


if __name__ == '__main__':
    main()
