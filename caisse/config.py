from pydantic_settings import BaseSettings, SettingsConfigDict
class Settings(BaseSettings):
    APP_ENV: str = "dev"
    APP_SECRET: str
    DB_URL: str = "sqlite:///./caisse.db"
    JWT_ISS: str = "coworkcaisse"
    JWT_EXP_MIN: int = 12*60
    APP_TZ: str = "UTC"  # business time zone, defines what "a day" is
    LOG_LEVEL: str = "INFO"
    # fixed prices in DH
    ENTRY_PRICE: int = 25
    SUBSCRIPTION_PRICE: int = 300
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")
settings = Settings()
