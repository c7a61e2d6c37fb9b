def get_a2a_client_logger():
    from assistant_common.logger import AppLogger, get_app_logger
    return get_app_logger(AppLogger.A2A_CLIENT)


def get_webhook_logger():
    from assistant_common.logger import AppLogger, get_app_logger
    return get_app_logger(AppLogger.WEBHOOK)


a2a_client_logger = get_a2a_client_logger()
webhook_logger = get_webhook_logger()
