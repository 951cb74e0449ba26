import boto3
import coc
import discord
from discord import app_commands

from cwl_medals import CocWarDataProvider, WarRoundStorage

from .config import AWS_REGION, COC_EMAIL, COC_PASSWORD, CWL_TABLE_NAME

intents = discord.Intents.default()
intents.guilds = True

bot = discord.Client(intents=intents)
tree = app_commands.CommandTree(bot)

dynamodb = boto3.resource("dynamodb", region_name=AWS_REGION)
table = dynamodb.Table(CWL_TABLE_NAME) if CWL_TABLE_NAME else None
storage = WarRoundStorage(table)

coc_client = coc.Client()
provider = CocWarDataProvider(coc_client, COC_EMAIL, COC_PASSWORD)
