"""OpenTelemetry metrics for tenant keystore provisioning."""

from opentelemetry import metrics

meter = metrics.get_meter("tenant_keystore")

keystores_generated_total = meter.create_counter(
    name="tenant_keystore_keystores_generated_total",
    description="Total tenant keystores generated and persisted",
    unit="1",
)

truststores_generated_total = meter.create_counter(
    name="tenant_keystore_truststores_generated_total",
    description="Total tenant trust stores generated and persisted",
    unit="1",
)

generation_failures_total = meter.create_counter(
    name="tenant_keystore_generation_failures_total",
    description="Failed keystore/trust store generations by stage",
    unit="1",
)

existence_checks_total = meter.create_counter(
    name="tenant_keystore_existence_checks_total",
    description="Keystore existence checks by result",
    unit="1",
)

legacy_algorithm_fallbacks_total = meter.create_counter(
    name="tenant_keystore_legacy_algorithm_fallbacks_total",
    description="Generations that fell back to the legacy MD5withRSA default",
    unit="1",
)

generation_duration = meter.create_histogram(
    name="tenant_keystore_generation_duration_seconds",
    description="Key pair and certificate generation duration in seconds",
    unit="s",
)


class KeystoreMetrics:
    """Facade for keystore metrics with proper labels."""

    def record_keystore_generated(self, file_type: str, algorithm: str) -> None:
        keystores_generated_total.add(1, {"file_type": file_type, "algorithm": algorithm})

    def record_truststore_generated(self, file_type: str) -> None:
        truststores_generated_total.add(1, {"file_type": file_type})

    def record_generation_failure(self, stage: str) -> None:
        """Labels: stage=generation|persistence"""
        generation_failures_total.add(1, {"stage": stage})

    def record_existence_check(self, result: str) -> None:
        """Labels: result=exists|missing|error"""
        existence_checks_total.add(1, {"result": result})

    def record_legacy_fallback(self) -> None:
        legacy_algorithm_fallbacks_total.add(1)

    def record_identity_generated(self, duration_seconds: float) -> None:
        generation_duration.record(duration_seconds)


# Singleton instance
keystore_metrics = KeystoreMetrics()
