"""Ingesta de telemetría de dataloggers Campbell vía MQTT.

Flujo:
  MQTT cs/v1/{data|metadata}/{model}/{serial}/{table}
  → TopicClassifier → PayloadDecoder → RecordDispatcher
  → TabularLogWriter (CSV) + DiagnosticReporter (log)
"""
