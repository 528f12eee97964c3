"""
PMS Sync Domain

Mirrors patients and appointments from external Practice Management Systems
(Cliniko, Nookal, Halaxy), classifies them by funding scheme (WC / EPC) and
maintains per-patient session quotas and the derived case read-model.
"""
