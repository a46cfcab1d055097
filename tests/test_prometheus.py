from ses_mock.prometheus import MockMetrics


def test_mock_metrics_counters_and_gauge():
    metrics = MockMetrics()

    metrics.inc_sent()
    metrics.inc_notification("Send", "delivered")
    metrics.inc_notification("Bounce", "failed")
    metrics.inc_confirmation("delivered")
    metrics.set_pending(3)

    output = metrics.generate_latest()
    assert b"sesmock_emails_sent_total 1.0" in output
    assert b'sesmock_notifications_total{event_type="Send",outcome="delivered"} 1.0' in output
    assert b'sesmock_subscription_confirmations_total{outcome="delivered"} 1.0' in output
    assert b"sesmock_pending_notifications 3.0" in output


def test_registries_are_independent():
    first = MockMetrics()
    second = MockMetrics()
    first.inc_sent()
    assert b"sesmock_emails_sent_total 0.0" in second.generate_latest()
