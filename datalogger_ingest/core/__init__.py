"""Core module - Pipeline de ingesta de dataloggers.

Estructura:
- transport/       → Recepción MQTT
- domain/          → Modelos y outcomes
- classification/  → Clasificación de topics
- validation/      → Decodificación de payloads
- pipeline/        → Despacho de registros
- monitoring/      → Métricas y diagnóstico
"""
