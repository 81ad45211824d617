import logging
import smtplib
import ssl
from email.message import EmailMessage
from smtplib import SMTPException
from ..config import AppConfig

logger = logging.getLogger(__name__)


class EmailService:
    """
    Serviço para envio de e-mails de boas-vindas.
    Em desenvolvimento (SMTP_HOST=dev-log), apenas loga no console.
    """

    def __init__(self, config: AppConfig) -> None:
        self._config = config

    def build_welcome_message(self, to_email: str, full_name: str, student_number: str) -> EmailMessage:
        institution = self._config.institution_name
        body = f"""Bonjour {full_name},

Votre inscription à {institution} a été enregistrée avec succès.

Votre numéro étudiant : {student_number}

Conservez ce numéro, il vous sera demandé pour toutes vos démarches
auprès de la scolarité.

Le service de la scolarité
"""
        msg = EmailMessage()
        msg["Subject"] = f"Bienvenue - {institution}"
        msg["From"] = self._config.smtp_from
        msg["To"] = to_email
        msg.set_content(body)
        return msg

    def send_welcome(self, to_email: str, full_name: str, student_number: str) -> None:
        """
        Envia o e-mail de boas-vindas com o número de estudante.
        """
        if not to_email or not to_email.strip():
            raise ValueError("to_email não pode estar vazio")
        if not student_number:
            raise ValueError("student_number não pode estar vazio")

        msg = self.build_welcome_message(to_email, full_name, student_number)

        if self._config.smtp_host == "dev-log":
            logger.warning(
                f"⚠️ MODO DEV: E-mail NÃO foi enviado (apenas simulado). "
                f"Configure SMTP_HOST no .env para envio real. student_number={student_number}"
            )
            print("\n" + "=" * 60)
            print("📧 E-MAIL DE BOAS-VINDAS (DEV MODE - NÃO ENVIADO)")
            print("=" * 60)
            print(f"De: {msg['From']}")
            print(f"Para: {msg['To']}")
            print(f"Assunto: {msg['Subject']}")
            print("-" * 60)
            print(msg.get_content())
            print("=" * 60 + "\n")
            return

        try:
            logger.info(
                f"Iniciando conexão SMTP: host={self._config.smtp_host}, "
                f"port={self._config.smtp_port}"
            )
            ssl_context = ssl.create_default_context()

            if self._config.smtp_port == 465:
                server = smtplib.SMTP_SSL(
                    self._config.smtp_host,
                    self._config.smtp_port,
                    timeout=30,
                    context=ssl_context,
                )
            else:
                server = smtplib.SMTP(self._config.smtp_host, self._config.smtp_port, timeout=30)
                if self._config.smtp_user:
                    server.starttls(context=ssl_context)

            try:
                if self._config.smtp_user:
                    server.login(self._config.smtp_user, self._config.smtp_password)
                server.send_message(msg)
            finally:
                server.quit()

            logger.info(
                f"✅ E-mail de boas-vindas enviado via SMTP: host={self._config.smtp_host}, "
                f"student_number={student_number}"
            )
        except SMTPException as e:
            logger.error(
                f"Erro SMTP ao enviar e-mail: error={type(e).__name__}: {e}",
                exc_info=True,
            )
            raise
