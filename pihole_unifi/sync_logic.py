import enum
import os

import structlog

from .clients.pihole_client import PiholeClient
from .clients.unifi_client import UnifiClient
from .exceptions import AuthError

log = structlog.get_logger()

TEST_RECORDS = {
    "test": "192.168.1.254",
    "test2": "192.168.1.253",
}


class Outcome(enum.Enum):
    ALREADY_PRESENT = "AlreadyPresent"
    CREATED = "Created"
    FAILED = "Failed"
    SKIPPED_EVALUATION_ONLY = "SkippedEvaluationOnly"
    AUTH_ERROR = "AuthError"
    UNKNOWN_FAILURE = "UnknownFailure"


def _contains_hostname(hostnames, hostname):
    wanted = hostname.lower()
    return any(existing.lower() == wanted for existing in hostnames)


def reconcile_record(session, hostname, ip, evaluation_only=False):
    """
    Ensures one A record exists on the UniFi controller.

    The controller's answer to the create call is not trusted; success is
    decided by reading the static DNS entries back.

    Args:
        session (UnifiSession): Logged-in controller session.
        hostname (str): Record name.
        ip (str): IPv4 address the name should resolve to.
        evaluation_only (bool): Report what would happen without writing.

    Returns:
        Outcome: The result for this record.
    """
    try:
        existing = session.get_static_dns_hostnames() | session.get_device_hostnames()
        if _contains_hostname(existing, hostname):
            return Outcome.ALREADY_PRESENT

        if evaluation_only:
            return Outcome.SKIPPED_EVALUATION_ONLY

        session.create_static_dns_record(hostname, ip)

        if _contains_hostname(session.get_static_dns_hostnames(), hostname):
            return Outcome.CREATED
        return Outcome.FAILED
    except AuthError as e:
        log.error("UniFi session is no longer valid", hostname=hostname, error=str(e))
        return Outcome.AUTH_ERROR
    except Exception:
        log.error("Unexpected error while syncing record", hostname=hostname, ip=ip, exc_info=True)
        return Outcome.UNKNOWN_FAILURE


def get_source_records(config):
    if config["test_record"]:
        log.info("Using built-in test records instead of Pi-hole data", count=len(TEST_RECORDS))
        return dict(TEST_RECORDS)
    pihole_client = PiholeClient(
        config["pihole_url"],
        config["pihole_api_token"],
        timeout=config["request_timeout_seconds"],
    )
    return pihole_client.get_custom_dns_records()


def sync_pihole_to_unifi(config):
    """
    Main function to run the Pi-hole to UniFi sync.

    Reads the source records, logs in to the controller and reconciles each
    record in order. Per-record failures are logged and skipped over; source,
    login and session failures raise and end the run.

    Returns:
        dict: Count of records per ``Outcome``.

    Raises:
        SourceUnavailable: Pi-hole records could not be read. Raised before
            the controller is contacted.
        AuthFailed: The controller login failed.
        AuthError: The controller rejected the session mid-run.
    """
    app_version = os.getenv("APP_VERSION", "Not Set")
    log.info(
        "Starting Pi-hole to UniFi DNS Sync",
        version=app_version,
        evaluation_only=config["evaluation_only"],
        test_record=config["test_record"],
    )

    records = get_source_records(config)

    unifi_client = UnifiClient(
        config["unifi_url"],
        site=config["unifi_site"],
        timeout=config["request_timeout_seconds"],
    )
    session = unifi_client.login(config["unifi_username"], config["unifi_password"])

    summary = {outcome: 0 for outcome in Outcome}
    for hostname, ip in records.items():
        outcome = reconcile_record(session, hostname, ip, evaluation_only=config["evaluation_only"])
        summary[outcome] += 1

        if outcome is Outcome.ALREADY_PRESENT:
            log.info("Record already present in UniFi, skipping", hostname=hostname, ip=ip)
        elif outcome is Outcome.SKIPPED_EVALUATION_ONLY:
            log.info("[EVALUATION ONLY] Would create static DNS record", hostname=hostname, ip=ip)
        elif outcome is Outcome.CREATED:
            log.info("Created static DNS record", hostname=hostname, ip=ip)
        elif outcome is Outcome.FAILED:
            log.error("Static DNS record not found after create", hostname=hostname, ip=ip)
        elif outcome is Outcome.UNKNOWN_FAILURE:
            log.error("Failed to sync record due to an unexpected error", hostname=hostname, ip=ip)
        elif outcome is Outcome.AUTH_ERROR:
            raise AuthError(f"UniFi session became invalid while syncing {hostname}")
        else:
            raise AssertionError(f"Unhandled outcome: {outcome}")

    log.info(
        "Pi-hole to UniFi Sync Summary",
        total_records=len(records),
        **{outcome.value: count for outcome, count in summary.items()},
    )
    return summary
