"""Voltline Commerce load testing: Locust entry point.

Usage:
    # All scenarios (web UI):
    locust -f loadtests/locustfile.py --host http://localhost:8000

    # Storefront traffic only:
    locust -f loadtests/locustfile.py MixedWorkloadUser

    # Headless (CI mode), with the scheduled sweep running alongside:
    SWEEP_SECRET=... locust -f loadtests/locustfile.py MixedWorkloadUser SweepUser --headless \
           -u 50 -r 5 -t 300s --csv=results/loadtest

The server should run with the fake payment gateway and fake email adapter
(no STRIPE_API_KEY or EMAIL_API_KEY set).
"""

import logging
import time

from locust import events

from loadtests.helpers.response import extract_error_detail
from loadtests.scenarios.mixed import MixedWorkloadUser, SweepUser  # noqa: F401

logger = logging.getLogger("loadtest")


@events.request.add_listener
def on_request(request_type, name, response, exception, **_kw):
    """Log error details for every failed request."""
    if exception:
        logger.error("[EXCEPTION] %s %s: %s", request_type, name, exception)
    elif response is not None and response.status_code >= 400 and response.status_code != 404:
        detail = extract_error_detail(response)
        logger.error("[%s] %s %s: %s", response.status_code, request_type, name, detail)


@events.test_start.add_listener
def on_test_start(environment, **_kwargs):
    print(f"\n[LOADTEST] Started at {time.strftime('%H:%M:%S')}")
    print(f"[LOADTEST] Target host: {environment.host}")
    print()


@events.test_stop.add_listener
def on_test_stop(environment, **_kwargs):
    """Print the request totals when the test ends."""
    total = environment.stats.total
    print(f"\n[LOADTEST] Stopped at {time.strftime('%H:%M:%S')}")
    print(
        f"[LOADTEST] {total.num_requests} requests, {total.num_failures} failures, "
        f"median {total.median_response_time:.0f} ms, p95 {total.get_response_time_percentile(0.95):.0f} ms"
    )
    print()
