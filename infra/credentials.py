from __future__ import annotations

import json
from typing import Optional

from google.oauth2 import service_account

# só inserir linhas; não precisa de acesso de leitura/admin
INSERT_SCOPES = ["https://www.googleapis.com/auth/bigquery.insertdata"]


def load_service_account(
    key_file: Optional[str] = None,
    key: Optional[str] = None,
) -> Optional[service_account.Credentials]:
    """
    Credenciais de service account a partir do arquivo JSON (`key_file`) ou do
    conteúdo do JSON (`key`). O arquivo tem prioridade. None = sem credenciais.
    O token é obtido/renovado pelo sink antes de cada envio.
    """
    if key_file:
        return service_account.Credentials.from_service_account_file(key_file, scopes=INSERT_SCOPES)
    if key:
        try:
            info = json.loads(key)
        except ValueError as e:
            raise ValueError("Config inválida: 'sink.key' não é um JSON válido.") from e
        if not isinstance(info, dict):
            raise ValueError("Config inválida: 'sink.key' deve ser um objeto JSON.")
        return service_account.Credentials.from_service_account_info(info, scopes=INSERT_SCOPES)
    return None
