"""
Logica di dominio pura
Progetto: PrintPro (Gestionale Tipografia)

Calcolo prezzi, macchina a stati degli ordini, regole di modifica,
numerazione progressiva, commissioni e rimborsi, classificazione file.
Nessun modulo di questo package esegue I/O: i service applicano
queste regole ai modelli e si occupano della persistenza.
"""
