"""systemd-docker: run docker containers as systemd services.

Launches (or re-attaches to) a container, reports the container's main
process to systemd via sd_notify, and stays alive until the container exits.
"""

__version__ = "0.1.0"
