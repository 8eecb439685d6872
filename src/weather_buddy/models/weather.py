"""Pydantic models for QWeather forecast data."""

from pydantic import BaseModel, ConfigDict, Field


class ForecastDay(BaseModel):
    # QWeather returns many more fields (sunrise, uvIndex, ...); keep them.
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    fx_date: str = Field(alias="fxDate")
    text_day: str = Field(default="", alias="textDay")
    text_night: str = Field(default="", alias="textNight")
    temp_min: str = Field(default="0", alias="tempMin")
    temp_max: str = Field(default="0", alias="tempMax")
    wind_dir_day: str = Field(default="", alias="windDirDay")
    wind_scale_day: str = Field(default="0", alias="windScaleDay")
    humidity: str = ""
    precip: str = "0"
    pop: str = "0"


class WeatherForecast(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    code: str = "200"
    update_time: str = Field(default="", alias="updateTime")
    daily: list[ForecastDay] = Field(default_factory=list)
    location_code: str = ""
    location_name: str = ""
