from linkgate.main import serve

serve()
