# bintrack/schemas/account.py
from pydantic import BaseModel


class ConsumerCreate(BaseModel):
    name: str
    address: str
    contactNumber: str
    password: str


class ConsumerLogin(BaseModel):
    name: str
    password: str


class ConsumerOut(BaseModel):
    name: str
    address: str
    caNumber: str


class RegisterOut(BaseModel):
    message: str
    caNumber: str


class LoginOut(BaseModel):
    message: str
    consumer: ConsumerOut


class SupportRequestCreate(BaseModel):
    caNumber: str
    name: str
    subject: str
