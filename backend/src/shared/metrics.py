from opentelemetry import metrics
from opentelemetry.exporter.prometheus import PrometheusMetricReader
from opentelemetry.sdk.metrics import MeterProvider
from opentelemetry.sdk.metrics.export import ConsoleMetricExporter, PeriodicExportingMetricReader
from opentelemetry.sdk.resources import Resource


def setup_metrics(app_name: str, console_export: bool = True) -> MeterProvider:
    """Configure the global OpenTelemetry MeterProvider.

    Prometheus is always attached (pull model); the console reader is for
    local runs of the provisioning hook.
    """
    resource = Resource.create({"service.name": app_name})

    readers = [PrometheusMetricReader()]
    if console_export:
        readers.append(PeriodicExportingMetricReader(ConsoleMetricExporter()))

    provider = MeterProvider(resource=resource, metric_readers=readers)
    metrics.set_meter_provider(provider)
    return provider
