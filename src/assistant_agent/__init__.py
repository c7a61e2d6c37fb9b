def get_a2a_agent_logger():
    from assistant_common.logger import AppLogger, get_app_logger
    return get_app_logger(AppLogger.A2A_AGENT)


a2a_agent_logger = get_a2a_agent_logger()
