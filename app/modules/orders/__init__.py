"""
Módulo de Órdenes

Ciclo de vida: pending_approval -> approved -> in_progress -> delivered -> completed,
con cancelled/rejected como estados finales alternativos.

- La aprobación descuenta inventario en la misma transacción
- Completar requiere la confirmación de entrega del cliente y genera la factura
"""
