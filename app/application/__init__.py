"""
Capa de Aplicación - Pagos en escrow.

Esta capa contiene los casos de uso e interfaces (puertos).
Orquesta la lógica de negocio y define los contratos con la infraestructura.

Estructura:
- use_cases/: Coordinadores del ciclo de pago y procesador de webhooks
- interfaces/: Puertos (contratos para adaptadores)
- payment_ledger.py: Escritor único del ledger y su proyección en la reserva
- payee_resolution.py: Resolución explícita del profesional de una reserva
"""
