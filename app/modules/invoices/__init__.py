"""
Módulo de Facturación (Invoices)

- Una factura por orden completada (order_id es la clave de idempotencia)
- Numeración por cliente y año: {customer_code}-INV-{yyyy}-{nnnn}
- IVA con redondeo half-up a 3 decimales (OMR)
- Ciclo de vida: pending -> paid | overdue | cancelled

Tablas principales:
- invoices: Facturas
- invoice_line_items: Ítems de factura
- invoice_sequences: Secuencias de numeración por cliente y año
"""
