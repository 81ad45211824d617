"""
Inscrição de estudantes, templates de documentos e calendário de exames.
"""
